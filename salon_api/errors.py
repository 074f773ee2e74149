"""
Error taxonomy shared by services and routers.

Every error is an HTTPException so FastAPI can render it even without the
custom handlers; main.py installs handlers that turn them into the
``{"error": ..., "details": ...}`` envelope.
"""

from typing import Optional

from fastapi import HTTPException


class AppError(HTTPException):
    status_code = 500
    error = "Internal server error"

    def __init__(
        self,
        error: Optional[str] = None,
        details: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.error = error or self.error
        self.details = details
        super().__init__(status_code=self.status_code, detail=self.error, headers=headers)

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailed(AppError):
    status_code = 400
    error = "Validation failed"


class AuthError(AppError):
    status_code = 401
    error = "Unauthorized"

    def __init__(self, reason: str, error: Optional[str] = None, headers=None):
        self.reason = reason
        super().__init__(error=error, details=reason, headers=headers)


class ForbiddenError(AppError):
    status_code = 403
    error = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    error = "Not found"


class ConflictError(AppError):
    status_code = 409
    error = "Conflict"


class RateLimitError(AppError):
    status_code = 429
    error = "Too Many Requests"


class InternalError(AppError):
    status_code = 500


class UpstreamError(AppError):
    status_code = 502
    error = "Upstream service failed"


class ServiceUnavailable(AppError):
    status_code = 503
    error = "Service unavailable"


# Booking / availability specific errors


class SlotTaken(ConflictError):
    error = "This appointment start time is already booked"


class TreatmentNotFound(NotFoundError):
    error = "Treatment not found"


class EmailSendFailed(InternalError):
    error = "Failed to send email"
