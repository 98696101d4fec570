"""Application error taxonomy.

Service-layer code raises these; ``libs.common.error_handler`` turns them
into JSON responses of the form ``{"message": ...}``.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class InvalidStateError(AppError):
    """Acting on a record whose status does not allow the transition."""

    status_code = 400
    default_message = "Invalid state"


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"
