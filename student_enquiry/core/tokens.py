"""
Daily token numbers.

Each registration gets a per-day sequential token (101, 102, ...) used as
the queue/receipt number at the enquiry desk. The counter for a date lives
in its own document and only changes inside the store's transaction, see
StudentStore.insert_with_token.
"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from student_enquiry.core.config import settings


def current_token_date(now: Optional[datetime] = None) -> str:
    """Calendar date (YYYY-MM-DD) tokens are issued under right now."""
    if now is None:
        if settings.TOKEN_TIMEZONE:
            now = datetime.now(ZoneInfo(settings.TOKEN_TIMEZONE))
        else:
            now = datetime.now()
    elif settings.TOKEN_TIMEZONE and now.tzinfo is not None:
        now = now.astimezone(ZoneInfo(settings.TOKEN_TIMEZONE))
    return now.date().isoformat()


def next_token_number(last_token: Optional[int]) -> int:
    """Token that follows last_token; a day with no counter starts after TOKEN_START."""
    if last_token is None:
        last_token = settings.TOKEN_START
    return last_token + 1


def counter_document(token_date: str, token_number: int) -> dict:
    return {"last_token": token_number, "date": token_date}
