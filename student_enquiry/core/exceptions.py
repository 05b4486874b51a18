"""
Application exceptions.

Every error the API reports derives from AppError, which carries the HTTP
status and a machine-readable code. Handlers in main.py render them into
the standard failure envelope.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.field = field


class ValidationError(AppError):
    """A required field is missing or invalid on the active form branch."""

    def __init__(self, field: str, message: str):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, field=field)


class DuplicateKeyError(AppError):
    """Register number already belongs to another student."""

    def __init__(self, register_number: str):
        super().__init__(
            "Student with this Register Number already exists",
            code="DUPLICATE_REGISTER_NUMBER",
            status_code=400,
            field="register_number",
        )
        self.register_number = register_number


class NotFoundError(AppError):
    def __init__(self, message: str = "Student not found"):
        super().__init__(message, code="NOT_FOUND", status_code=404)


class TokenAssignmentError(AppError):
    """The daily counter transaction did not commit. Safe to retry the whole registration."""

    def __init__(self, message: str = "Failed to generate token. Please try again."):
        super().__init__(message, code="TOKEN_ASSIGNMENT_FAILED", status_code=503)


class StoreUnavailableError(AppError):
    def __init__(self, message: str = "Student store is unavailable. Please try again."):
        super().__init__(message, code="STORE_UNAVAILABLE", status_code=503)
