"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps domain, infrastructure
and framework exceptions to HTTP responses.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.domain.exceptions import GatewayException
from app.shared.telemetry.tracing import get_trace_id

logger = logging.getLogger(__name__)

# Map error_code to HTTP status
_ERROR_CODE_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "UNSUPPORTED_PROVIDER": 400,
    "AUTHENTICATION_ERROR": 401,
    "TOKEN_EXPIRED": 401,
    "INVALID_REFRESH_TOKEN": 401,
    "PROVIDER_AUTH_EXPIRED": 401,
    "PERMISSION_DENIED": 403,
    "WAITLIST_DENIED": 403,
    "RESOURCE_NOT_FOUND": 404,
    "ACCOUNT_ALREADY_EXISTS": 409,
    "WAITLIST_ENTRY_EXISTS": 409,
    "CONFIGURATION_ERROR": 500,
    "CREDENTIAL_ERROR": 500,
    "PROFILE_EXTRACTION_ERROR": 502,
    "PROVIDER_OPERATION_ERROR": 502,
    "SERVICE_UNAVAILABLE": 503,
}


def _gateway_exception_handler(
    request: Request, exc: GatewayException
) -> JSONResponse:
    """Return JSON from GatewayException.to_dict() with appropriate status code."""
    status = _ERROR_CODE_STATUS.get(exc.error_code, 400)
    if status >= 500:
        logger.warning("%s: %s", exc.error_code, exc.message)
    return JSONResponse(
        status_code=status,
        content=exc.to_dict(),
    )


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 422 with validation error details."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": _jsonable_errors(exc),
        },
    )


def _jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Drop the non-serializable ctx objects pydantic attaches to some errors."""
    return [
        {k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()
    ]


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail},
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception (trace_id=%s): %s", get_trace_id(), exc)
    settings = get_settings()
    detail: Any = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Call once after creating the app. Handlers: GatewayException (and
    subclasses, including provider errors), RequestValidationError,
    StarletteHTTPException, generic Exception.
    """
    app.add_exception_handler(GatewayException, _gateway_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
