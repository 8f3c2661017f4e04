"""
Application error taxonomy.

Services raise these; the API layer maps ``status_code`` straight onto the
HTTP response and wraps ``message`` in the response envelope.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None):
        self.message = message or self.__class__.message
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)


class BadRequestError(AppError):
    status_code = 400
    message = "Bad request"


class UnauthenticatedError(AppError):
    status_code = 401
    message = "Authentication required"


class ForbiddenError(AppError):
    status_code = 403
    message = "Access denied"


class QuotaExceededError(AppError):
    """A subscription limit has been reached."""

    status_code = 403
    message = "Subscription limit reached"

    def __init__(self, plan: str, message: Optional[str] = None):
        self.plan = plan
        super().__init__(message or f"Your {plan} plan has reached its limit. Please upgrade.")


class NotFoundError(AppError):
    status_code = 404
    message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    message = "Conflict"


class GoneError(AppError):
    status_code = 410
    message = "Resource is no longer available"


class EmailDeliveryError(AppError):
    """The mail transport rejected or failed a send. Safe to retry."""

    status_code = 502
    message = "Failed to deliver email"
    retryable = True
