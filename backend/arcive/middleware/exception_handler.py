"""Exception handlers for structured error responses.

Every error leaves the API as ``{"error": <message>, "code": ..., "details": ...}``.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..exceptions import ArciveException, ErrorCode

logger = logging.getLogger(__name__)


async def arcive_exception_handler(request: Request, exc: ArciveException) -> JSONResponse:
    """
    Handle domain exceptions and return structured JSON responses.

    Client errors are logged at INFO, server errors at ERROR.
    """
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"ArciveException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and query parameters are reported as 400."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    message = first.get("msg", "Invalid request")
    if field:
        message = f"{field}: {message}"

    logger.info(
        "Request validation failed",
        extra={"path": request.url.path, "method": request.method, "field": field},
    )

    return JSONResponse(
        status_code=400,
        content={
            "error": message,
            "code": ErrorCode.VALIDATION_ERROR.value,
            "details": {"field": field} if field else {},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log with traceback, never leak internals to the client."""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "code": ErrorCode.INTERNAL_ERROR.value,
            "details": {},
        },
    )
