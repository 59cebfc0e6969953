"""FastAPI application entry point for the report query engine."""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import ResponseValidationError, RequestValidationError

from app.logging.config import configure_logging
from app.logging.middleware import LoggingMiddleware
from app.core.router import register_routes
from app.core.database import init_db
from app.logging.exception_handlers import (
    report_engine_exception_handler,
    response_validation_exception_handler,
    request_validation_exception_handler,
    general_exception_handler,
    http_exception_handler,
)
from app.reporting.errors import ReportEngineError


def create_app(initialize_database: bool = True) -> FastAPI:

    configure_logging()

    app = FastAPI(
        title="Report Query Engine",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    if initialize_database:
        init_db()

    # Add request logger middleware
    app.add_middleware(LoggingMiddleware)

    # Report engine errors carry the offending field; everything else is generic
    app.add_exception_handler(ReportEngineError, report_engine_exception_handler)
    app.add_exception_handler(ResponseValidationError, response_validation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)

    return app
