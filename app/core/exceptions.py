"""
Domain exceptions raised by the services layer and their HTTP mapping.

Services never raise ``HTTPException``; the handlers registered here turn the
domain errors into JSON responses.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Base class for every error surfaced by the booking platform"""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"
    default_detail = "Bad request."

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    default_detail = "Validation failed."


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_detail = "The requested resource was not found."


class SlotUnavailableError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "SLOT_UNAVAILABLE"
    default_detail = "Time slot is not available."


class InvalidStateError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "INVALID_STATE"
    default_detail = "Operation not permitted in the current booking status."


class ConflictError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_detail = "A conflicting resource already exists."


class GatewayError(BookingError):
    """Payment or notification dependency failure"""
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "GATEWAY_ERROR"
    default_detail = "Upstream gateway failure."


class AuthenticationError(BookingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"
    default_detail = "Invalid authentication credentials."


class PermissionDeniedError(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_detail = "You do not have permission to perform this action."


async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.detail)
    else:
        logger.info("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.detail)

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.error_code, "detail": exc.detail},
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request data gets the same envelope as ValidationError"""
    messages = []
    for error in exc.errors():
        # drop the leading "body"/"query" segment
        field = ".".join(str(part) for part in error.get("loc", ())[1:])
        messages.append(f"{field}: {error.get('msg')}" if field else error.get("msg", ""))
    detail = "; ".join(messages) or ValidationError.default_detail

    logger.info("%s on %s %s: %s", ValidationError.error_code, request.method, request.url.path, detail)
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"success": False, "error": ValidationError.error_code, "detail": detail},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
