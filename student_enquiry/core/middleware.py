"""
Request logging middleware: one line per request with status and duration.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("student_enquiry.requests")

# Paths not worth a log line
QUIET_PATHS = {"/", "/api/health", "/docs", "/redoc", "/openapi.json"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        started = time.perf_counter()
        response = await call_next(request)

        if path not in QUIET_PATHS and request.method != "OPTIONS":
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(f"[{request.method}] {path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
        return response
