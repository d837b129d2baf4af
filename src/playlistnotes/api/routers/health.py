# Hey future me - dieser Router ist für Docker Health Checks!
#
# Endpoints:
# - /health/live → Liveness probe (app is running, plus HTTP pool state)
#
# Docker HEALTHCHECK: curl -f http://localhost:8000/health/live || exit 1
"""Health check endpoints for Docker/Kubernetes probes."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from playlistnotes.infrastructure.integrations.http_pool import HttpClientPool

router = APIRouter()


class LivenessStatus(BaseModel):
    """Simple liveness probe response."""

    status: str = Field(description="alive or dead")
    timestamp: str = Field(description="ISO timestamp")
    version: str = Field(description="Application version")
    import_status: str | None = Field(default=None, description="Import flow state")
    http_pool: dict[str, Any] = Field(default_factory=dict, description="Shared HTTP pool")


@router.get("/live", response_model=LivenessStatus)
async def liveness_probe(request: Request) -> LivenessStatus:
    """Liveness probe. No dependency checks, just "am I alive"."""
    flow = getattr(request.app.state, "import_flow", None)
    return LivenessStatus(
        status="alive",
        timestamp=datetime.now(UTC).isoformat(),
        version=getattr(request.app, "version", ""),
        import_status=str(flow.status) if flow is not None else None,
        http_pool=HttpClientPool.get_pool_stats(),
    )
