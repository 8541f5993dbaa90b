"""Domain errors raised by backend services and mapped to HTTP responses."""

from __future__ import annotations

from shared.models import ErrorCode


class FinanceError(Exception):
    """Base error carrying a stable code and the HTTP status it maps to."""

    code: ErrorCode = ErrorCode.BACKEND_ERROR
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailedError(FinanceError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class NotFoundError(FinanceError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class UnauthorizedError(FinanceError):
    """Raised when a bearer token or credentials cannot be validated."""

    code = ErrorCode.UNAUTHORIZED
    status_code = 401


class DuplicateEmailError(FinanceError):
    code = ErrorCode.CONFLICT
    status_code = 400

    def __init__(self, message: str = "User with this email already exists") -> None:
        super().__init__(message)


class BackendError(FinanceError):
    """Store or identity oracle failure."""
