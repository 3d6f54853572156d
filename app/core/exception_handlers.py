"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps domain exceptions and
unhandled errors to JSON responses.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.domain.exceptions import CmsException

logger = logging.getLogger(__name__)

# Map domain error_code to HTTP status when applicable
_ERROR_CODE_STATUS: dict[str, int] = {
    "RESOURCE_NOT_FOUND": 404,
    "TENANT_NOT_FOUND": 404,
    "TENANT_HAS_ACTIVE_RECORDS": 409,
    "VALIDATION_ERROR": 400,
    "UNKNOWN_MODEL": 400,
    "SERVICE_UNAVAILABLE": 503,
    "TRANSACTION_TIMEOUT": 504,
}


def _cms_exception_handler(request: Request, exc: CmsException) -> JSONResponse:
    """Return error_code, message and details with the mapped status code."""
    status = _ERROR_CODE_STATUS.get(exc.error_code, 400)
    return JSONResponse(
        status_code=status,
        content={"error": exc.error_code, "message": exc.message, "details": exc.details},
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    settings = get_settings()
    detail: Any = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register CmsException (and subclasses) and generic Exception handlers."""
    app.add_exception_handler(CmsException, _cms_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
