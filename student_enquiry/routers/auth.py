"""
Auth router: admin login gate.

Mock mode: username/password checked against settings, returns a mock token.
Firebase mode: client signs in with the Firebase SDK and sends the ID token.
Off: no login needed; the endpoint still answers so the UI can check which mode is active.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from student_enquiry.core.config import settings
from student_enquiry.core.security import check_admin_credentials, get_current_admin, mock_token_for
from student_enquiry.schemas.auth import AdminLogin
from student_enquiry.utils.response import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/login")
def login(body: AdminLogin):
    if settings.AUTH_MODE == "firebase":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Use Firebase SDK for login, then send the ID token as a bearer token.",
        )

    if settings.AUTH_MODE == "off":
        return success_response(
            data={"token": None, "user": {"username": body.username}},
            message="Login not required",
        )

    if not check_admin_credentials(body.username, body.password):
        logger.warning(f"Failed admin login for '{body.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password.",
        )

    return success_response(
        data={"token": mock_token_for(body.username), "user": {"username": body.username}},
        message="Login successful",
    )


@router.get("/me")
async def me(admin: dict = Depends(get_current_admin)):
    return success_response(data=admin)
