"""
KeepNotes Backend — Request ID Middleware
===========================================

What:  Assigns a short correlation ID to each request and echoes it back.
Why:   Ties every log line of one request together, and lets a client quote
       the ID from an error body when reporting a problem.
How:   Reuses the client's X-Request-ID if sent, else generates one; stores it
       in a ContextVar (for loggers and error handlers) and request.state
       (for route handlers), then sets the X-Request-ID response header.
When:  Runs just inside the CORS middleware, before logging and routing.

Unexpected errors:
    Starlette hands exceptions without a more specific handler to
    ServerErrorMiddleware, which sits outside every user middleware, so its
    500 would carry neither X-Request-ID nor the CORS headers. Such errors
    are turned into the JSON 500 here instead, inside the chain.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def unexpected_error_response(rid: str) -> JSONResponse:
    """The generic 500 body; never leaks exception details to the client."""
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again.",
            "request_id": rid,
        },
    )


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware that assigns a unique ID to each request for tracing."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 hex chars are plenty to correlate log lines of one process
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
            response = unexpected_error_response(rid)

        response.headers["X-Request-ID"] = rid
        return response
