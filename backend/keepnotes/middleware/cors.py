"""
KeepNotes Backend — Permissive CORS Middleware
================================================

What:  Answers OPTIONS on any path with 204 and the allowed methods/headers,
       and stamps Access-Control-Allow-Origin on every other response.
Why:   The browser front-end may be served from another origin during
       development, and its PUT/DELETE calls need a preflight answer.
How:   Short-circuits OPTIONS before routing, so preflights never hit a 405
       even for paths without an OPTIONS handler.

Starlette's CORSMiddleware only handles requests that carry
Access-Control-Request-Method and answers those with 200, which is why
this service ships its own.
"""

from typing import List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

ALLOWED_METHODS = "GET,POST,PUT,DELETE,OPTIONS"
ALLOWED_HEADERS = "Content-Type"


class PermissiveCORSMiddleware(BaseHTTPMiddleware):
    """
    Args:
        allow_origins: Origins to allow; ["*"] (the default) allows any.
    """

    def __init__(self, app: ASGIApp, allow_origins: Optional[List[str]] = None):
        super().__init__(app)
        self.allow_origins = allow_origins or ["*"]

    def _origin_header(self, request: Request) -> str:
        if "*" in self.allow_origins:
            return "*"
        origin = request.headers.get("origin", "")
        return origin if origin in self.allow_origins else self.allow_origins[0]

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        origin = self._origin_header(request)

        if request.method == "OPTIONS":
            return Response(
                status_code=204,
                headers={
                    "Access-Control-Allow-Origin": origin,
                    "Access-Control-Allow-Methods": ALLOWED_METHODS,
                    "Access-Control-Allow-Headers": ALLOWED_HEADERS,
                },
            )

        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = origin
        if origin != "*":
            response.headers["Vary"] = "Origin"
        return response
