# app/logging/exception_handlers.py

import logging
import traceback
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import ResponseValidationError, RequestValidationError

from app.reporting.errors import (
    AuthorizationError,
    ExecutionError,
    ReportEngineError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Report engine error class -> HTTP status
REPORT_ERROR_STATUS = (
    (ValidationError, 400),
    (AuthorizationError, 401),
    (ExecutionError, 503),
)


def _request_summary(request: Request) -> str:
    return f"{request.method} {request.url.path}"


async def report_engine_exception_handler(request: Request, exc: ReportEngineError):
    """Map report engine errors onto HTTP responses that name the offending field."""
    status_code = 500
    for error_class, code in REPORT_ERROR_STATUS:
        if isinstance(exc, error_class):
            status_code = code
            break

    if status_code >= 500:
        logger.error("%s failed with %s: %s", _request_summary(request), type(exc).__name__, exc.message)
    else:
        logger.info("%s rejected with %s", _request_summary(request), type(exc).__name__)

    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and log them with traceback"""
    logger.error(
        "Unhandled %s on %s\n%s",
        type(exc).__name__,
        _request_summary(request),
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError):
    logger.error("Response validation failed on %s: %s", _request_summary(request), exc.errors())
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error: Response validation failed."},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    logger.info("Request validation failed on %s (%d errors)", _request_summary(request), len(exc.errors()))

    # Convert errors to a safe format for JSON response
    def convert_error(error):
        if isinstance(error, dict):
            return {k: convert_error(v) for k, v in error.items()}
        elif isinstance(error, list):
            return [convert_error(item) for item in error]
        else:
            return str(error)

    safe_errors = convert_error(exc.errors())

    return JSONResponse(
        status_code=422,
        content={"detail": safe_errors},
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions and log 4xx/5xx errors"""
    if exc.status_code >= 400:
        logger.warning("%s returned %s: %s", _request_summary(request), exc.status_code, exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )
