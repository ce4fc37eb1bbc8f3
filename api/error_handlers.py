"""Global exception handlers.

Every failure leaves the API in one envelope:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}

The HTTP status carries the class of failure and "code" the specific reason
(INVALID_PLAN, SAME_PLAN, INVALID_SIGNATURE, ...). Server-side failures are
logged with their traceback and answered with a generic message.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.exceptions import ClinicdeskException
from clinicdesk.logging import get_logger

logger = get_logger(__name__)

# Codes for HTTPExceptions raised by dependencies (auth, workspace context)
HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_FAILED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the failure envelope."""
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"success": False, "error": error}


def _respond(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(code, message, details),
        headers=headers,
    )


async def clinicdesk_exception_handler(
    request: Request, exc: ClinicdeskException
) -> JSONResponse:
    """Errors raised by services: status and code come from the exception."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "api_error",
        code=exc.error_code,
        status=exc.status_code,
        path=request.url.path,
        cause=repr(exc.__cause__) if exc.__cause__ else None,
        exc_info=(type(exc), exc, exc.__traceback__) if exc.status_code >= 500 else None,
    )
    return _respond(exc.status_code, exc.error_code, exc.message, exc.details or None)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and path parameters are client errors (400, not 422)."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", [])),
            "message": error.get("msg", "Invalid value"),
            "type": error.get("type", "value_error"),
        }
        for error in exc.errors()
    ]
    logger.info("request_invalid", path=request.url.path, error_count=len(errors))
    return _respond(
        400, "VALIDATION_ERROR", "Request validation failed", {"errors": errors}
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """HTTPExceptions from dependencies and the router, in the same envelope."""
    message = str(exc.detail) if exc.detail else "An error occurred"
    log = logger.error if exc.status_code >= 500 else logger.info
    log("http_error", status=exc.status_code, path=request.url.path, detail=message)
    return _respond(
        exc.status_code,
        HTTP_ERROR_CODES.get(exc.status_code, "ERROR"),
        message,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything else: log the traceback, reveal nothing."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return _respond(500, "INTERNAL_ERROR", "An unexpected error occurred")


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI app."""
    app.add_exception_handler(ClinicdeskException, clinicdesk_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
