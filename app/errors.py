"""
Errors raised by the booking engine and its collaborators.

Each error carries the HTTP status it maps to; the handlers registered in
``register_exception_handlers`` render them as ``{"message": ...}`` bodies.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"message": self.message}


class ValidationError(BookingError):
    """Missing or malformed input."""

    status_code = 400


class Unauthenticated(BookingError):
    status_code = 401


class Unauthorized(BookingError):
    status_code = 403


class NotFound(BookingError):
    status_code = 404


class Conflict(BookingError):
    """The requested room/date/time is not available."""

    status_code = 409

    def __init__(self, message: str, kind: str):
        super().__init__(message)
        self.kind = kind

    def to_body(self) -> dict:
        return {"message": self.message, "type": self.kind}


class AlreadyCancelled(BookingError):
    status_code = 400


class CancellationWindowExpired(BookingError):
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_body(self) -> dict:
        return {"message": self.message, "details": self.details}


class DataAccessError(BookingError):
    """The underlying store failed."""

    status_code = 500


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": str(exc) or "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
