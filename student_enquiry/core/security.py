"""
Security module: admin gate for the enquiry desk.

This is a convenience gate for desk staff, not a security boundary.

Modes (settings.AUTH_MODE):
- off: every request is treated as the desk admin
- mock: /api/auth/login checks ADMIN_USERNAME + bcrypt ADMIN_PASSWORD_HASH
  and hands out a "mock-{username}" bearer token
- firebase: bearer token is a Firebase ID token whose email is in ADMIN_EMAILS
"""

import logging
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from student_enquiry.core.config import settings
from student_enquiry.core.database import init_firebase

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer(auto_error=False)

ANONYMOUS_ADMIN = {"username": "desk", "email": None, "auth_mode": "off"}


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        # Malformed hash in configuration
        logger.error("ADMIN_PASSWORD_HASH is not a valid bcrypt hash")
        return False


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def check_admin_credentials(username: str, password: str) -> bool:
    if not settings.ADMIN_PASSWORD_HASH:
        logger.warning("ADMIN_PASSWORD_HASH not configured. Rejecting login.")
        return False
    return username == settings.ADMIN_USERNAME and verify_password(password, settings.ADMIN_PASSWORD_HASH)


def mock_token_for(username: str) -> str:
    return f"mock-{username}"


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------
async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> dict:
    if settings.AUTH_MODE == "off":
        return ANONYMOUS_ADMIN

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token. Please log in.",
        )

    if settings.AUTH_MODE == "mock":
        return _mock_auth(credentials.credentials)

    return _firebase_auth(credentials.credentials)


def _mock_auth(token: str) -> dict:
    if token == mock_token_for(settings.ADMIN_USERNAME):
        return {"username": settings.ADMIN_USERNAME, "email": None, "auth_mode": "mock"}
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token. Please log in again.",
    )


def _firebase_auth(token: str) -> dict:
    init_firebase()
    from firebase_admin import auth as fb_auth

    try:
        decoded = fb_auth.verify_id_token(token)
    except (ValueError, fb_auth.InvalidIdTokenError, fb_auth.ExpiredIdTokenError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired Firebase token",
        )

    email = (decoded.get("email") or "").lower()
    if email not in settings.admin_emails:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account is not an enquiry desk admin.",
        )
    return {"username": decoded["uid"], "email": email, "auth_mode": "firebase"}
