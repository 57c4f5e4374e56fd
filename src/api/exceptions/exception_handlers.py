"""
Exception handlers mapping every failure to a stable, client-safe error body.

Body shape: ``{"status": "error", "code": <http status>, "kind": <kind>,
"error": <message>}``; rate-limit errors add ``retryAfterSeconds``.
Internal details are logged, never returned.
"""

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.exceptions import AppError, RateLimitedError
from src.core.logging import get_logger

logger = get_logger(__name__)

# Constants for sanitized error messages
INVALID_REQUEST_MSG = "Invalid request data"
INTERNAL_ERROR_MSG = "Internal server error"


def error_response(
    status_code: int,
    kind: str,
    message: str,
    headers: dict[str, str] | None = None,
    **extra,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "code": status_code,
            "kind": kind,
            "error": message,
            **extra,
        },
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Handle application errors raised by the detection pipeline.

    Client errors are logged as warnings and server errors as errors.
    """
    kind = getattr(exc.kind, "value", exc.kind)
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "app_error",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        code=exc.code,
        kind=kind,
        details=exc.details,
    )

    if isinstance(exc, RateLimitedError):
        return error_response(
            exc.status_code,
            kind,
            exc.message,
            headers={"Retry-After": str(exc.retry_after_seconds)},
            retryAfterSeconds=exc.retry_after_seconds,
        )
    return error_response(exc.status_code, kind, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handle HTTPException (unknown routes, wrong methods) with the standard error body.
    """
    logger.warning(
        "http_exception",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        detail=exc.detail
    )
    detail = str(exc.detail) if exc.detail else "An error occurred"
    return error_response(exc.status_code, "HttpError", detail, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request schema errors (missing field, wrong JSON type).
    """
    logger.warning(
        "validation_exception",
        path=request.url.path,
        method=request.method,
        errors=exc.errors()
    )
    return error_response(422, "InvalidRequest", INVALID_REQUEST_MSG)


async def pydantic_validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """
    Handle Pydantic model validation errors (internal validation, not request validation).
    """
    logger.error(
        "pydantic_validation_error",
        path=request.url.path,
        method=request.method,
        errors=str(exc),
        exc_info=True
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "InternalError", INTERNAL_ERROR_MSG)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with a sanitized 500.
    """
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "InternalError", INTERNAL_ERROR_MSG)


def register_exception_handlers(app):
    """
    Register all custom exception handlers with the FastAPI app.
    """
    app.add_exception_handler(AppError, app_error_handler)

    # Standard FastAPI exceptions
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Pydantic model validation errors (internal validation, not request validation)
    app.add_exception_handler(ValidationError, pydantic_validation_error_handler)

    # Catch-all for any other exceptions
    app.add_exception_handler(Exception, generic_exception_handler)
