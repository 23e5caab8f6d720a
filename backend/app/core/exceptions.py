"""
Typed failures raised by the booking core and the services around it.

Every failure carries a machine-readable code and an HTTP status so the API
layer can render it without knowing which service raised it. Transactions are
always rolled back before one of these reaches a caller.
"""

from typing import Any, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from app.core.logging import get_logger

logger = get_logger(__name__)


class BookingError(Exception):
    """Base class for all typed failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "internal"

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.code = code or self.default_code
        self.message = message or self.code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidArgument(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid-argument"


class Unauthorized(BookingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "unauthorized"


class Forbidden(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not-found"


class Conflict(BookingError):
    """Seat already held, or a uniqueness rule was violated. Callers may retry."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class InvalidState(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid-state"


class Internal(BookingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "internal"


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request_rejected",
        code=exc.code,
        status_code=exc.status_code,
        message=exc.message,
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
        headers=headers,
    )
