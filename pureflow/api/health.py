"""
Health API endpoint.

Provides:
    GET /api/health - Engine status, active alert count, sync backlog and
                      storage reachability
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger = structlog.get_logger(__name__)

router = APIRouter()


class InfrastructureHealthModel(BaseModel):
    """Reachability of the backing stores."""

    postgres: str = "unknown"


class HealthResponse(BaseModel):
    """Response model for the health endpoint."""

    status: str = "unknown"
    active_alerts: int = 0
    pending_sync: int = 0
    dropped_from_queue: int = 0
    refresh_in_flight: bool = False
    last_processed: Optional[datetime] = None
    infrastructure: InfrastructureHealthModel
    uptime_seconds: int = 0
    timestamp: datetime

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "healthy",
                "active_alerts": 2,
                "pending_sync": 0,
                "dropped_from_queue": 0,
                "refresh_in_flight": False,
                "last_processed": "2025-03-01T08:00:30Z",
                "infrastructure": {"postgres": "connected"},
                "uptime_seconds": 3600,
                "timestamp": "2025-03-01T08:01:00Z",
            }
        }
    }


async def _postgres_status(postgres_client) -> str:
    if postgres_client is None:
        return "unknown"
    try:
        return "connected" if await postgres_client.ping() else "disconnected"
    except Exception as e:
        logger.warning("health_postgres_ping_failed", error=str(e))
        return "disconnected"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Get engine health",
)
async def get_health(request: Request) -> HealthResponse:
    """
    Report engine health.

    Status is "degraded" while alerts wait to be persisted or the database
    is unreachable; in-memory alerts are still served in that state.
    """
    state = request.app.state
    statistics = state.manager.get_statistics()
    postgres = await _postgres_status(state.postgres_client)
    now = datetime.now(timezone.utc)

    degraded = statistics.pending_sync > 0 or postgres == "disconnected"
    refresher = state.refresher

    return HealthResponse(
        status="degraded" if degraded else "healthy",
        active_alerts=statistics.active_alerts,
        pending_sync=statistics.pending_sync,
        dropped_from_queue=statistics.dropped_from_queue,
        refresh_in_flight=refresher.in_flight if refresher is not None else False,
        last_processed=statistics.last_processed,
        infrastructure=InfrastructureHealthModel(postgres=postgres),
        uptime_seconds=int((now - state.start_time).total_seconds()),
        timestamp=now,
    )
