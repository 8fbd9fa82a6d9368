"""
Service Errors and Exception Handlers

Every service module raises subclasses of ServiceError carrying a
machine-readable error code and the HTTP status to answer with. Routers
translate them into HTTPException(detail={"error", "message"}); the
handlers registered here cover anything that escapes a router.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


def to_http_exception(e: ServiceError) -> HTTPException:
    """Convert a service error to the HTTPException routers raise."""
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    )


def _describe_validation_errors(errors: list[dict]) -> str:
    fields = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        if loc:
            fields.append(".".join(loc))
    if not fields:
        return "Request validation failed."
    return f"Invalid or missing fields: {', '.join(dict.fromkeys(fields))}"


async def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed or missing input is a 400 in this API."""
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "error": "VALIDATION_ERROR",
                "message": _describe_validation_errors(errors),
                "details": jsonable_encoder(errors),
            }
        },
    )


async def _service_exception_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"error": exc.error_code, "message": exc.message}},
    )


async def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include the exception text only in development."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    message = str(exc) if settings.is_development else "An unexpected error occurred."
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"error": "INTERNAL_ERROR", "message": message}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the API's exception handlers. Call once after creating the app."""
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(ServiceError, _service_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
