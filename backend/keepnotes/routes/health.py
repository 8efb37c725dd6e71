"""
KeepNotes Backend — Health Check Route
========================================

What:  GET /api/health for load balancers, Docker health checks and test
       harnesses waiting for the server to come up.
How:   Liveness only; there is no external dependency to probe.
"""

from fastapi import APIRouter

from keepnotes import __version__
from keepnotes.schemas.note import HealthResponse

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check() -> HealthResponse:
    return HealthResponse(ok=True, version=__version__)
