"""
KeepNotes Backend — Request Logging Middleware
================================================

What:  One log line per HTTP request: method, path, status, duration, request ID.
Why:   A single greppable line per request is usually enough to reconstruct
       what a client did and how long it took.
Who:   Applied to every request; runs inside RequestIDMiddleware so the ID is set.

Log levels follow the status code:
    5xx → ERROR, 4xx → WARNING, everything else → INFO

Request bodies (note text, uploaded files) are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from keepnotes.middleware.request_id import request_id_var

logger = logging.getLogger("keepnotes.access")

# Polled by monitors; logging them would drown everything else
QUIET_PATHS = {"/api/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs structured information about each HTTP request and response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
