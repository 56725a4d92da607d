"""Health endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from civica.runtime import Runtime, get_runtime

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    issue_count: int
    connections: int
    pending_classifications: int
    simulation_running: bool


@router.get("/health", response_model=HealthResponse)
async def health_check(
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> HealthResponse:
    """
    Health check endpoint with registry status.

    Reports the registry size, connected subscribers, classifications in
    flight and whether the live simulation is running.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        issue_count=len(runtime.registry),
        connections=runtime.hub.connection_count,
        pending_classifications=runtime.gateway.pending_classifications,
        simulation_running=runtime.simulation.running,
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Simple readiness probe for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness probe for container orchestration."""
    return {"status": "alive"}
