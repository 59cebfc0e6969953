import time
import socket
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from typing import Callable

from app.core.config import APPLICATION_ID

logger = logging.getLogger(__name__)

# Paths excluded from request logging
EXCLUDED_PATHS = ("/api/docs", "/api/redoc", "/api/openapi.json")
PROCESS_TIME_HEADER = "X-Process-Time-Ms"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and processing time of every API request.

    Request and response bodies are not logged; report specs may carry
    sensitive filter values.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        try:
            self.hostname = socket.gethostname() or "unknown_host"
        except OSError:
            self.hostname = "unknown_host"
        self.application_id = APPLICATION_ID

        logger.info("Request logging enabled on host: %s, App ID: %s", self.hostname, self.application_id)

    async def dispatch(self, request: Request, call_next: Callable):
        if request.url.path.startswith(EXCLUDED_PATHS):
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            "%s %s -> %s (%.1f ms) org=%s client=%s host=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request.headers.get("x-organization-id", "-"),
            request.client.host if request.client else None,
            self.hostname,
        )
        response.headers[PROCESS_TIME_HEADER] = f"{duration_ms:.1f}"
        return response
