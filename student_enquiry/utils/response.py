"""
Standard API response format and utility functions.
"""

from typing import Any, Optional


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "data": data, "message": message}


def error_response(message: str = "Error", code: str = "ERROR", field: Optional[str] = None) -> dict:
    body = {"success": False, "error": message, "code": code}
    if field:
        body["field"] = field
    return body
