"""
Alerts API endpoints.

Provides:
    GET /api/alerts - Active alerts with optional severity and parameter filters
    GET /api/alerts/homepage - Top active alerts with short display strings
    GET /api/alerts/history - Stored alerts grouped by recency
    GET /api/statistics - Active alert counters
    POST /api/refresh - Run (or join) a refresh cycle

Active alert data is read from the AlertManager held in ``app.state``;
this module never mutates it except through the refresher.
"""

from datetime import datetime
from typing import List, Optional

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from pureflow.detection.history import HistoryPage
from pureflow.detection.manager import AlertManager
from pureflow.models.alerts import Alert, AlertSeverity, AlertStatistics, HomepageAlert

logger = structlog.get_logger(__name__)

router = APIRouter()


class AlertCountsModel(BaseModel):
    """Active alert counts by severity."""

    high: int = 0
    medium: int = 0
    low: int = 0
    total: int = 0


class AlertsResponse(BaseModel):
    """Response model for the active alerts endpoint."""

    alerts: List[Alert]
    counts: AlertCountsModel

    model_config = {
        "json_schema_extra": {
            "example": {
                "alerts": [
                    {
                        "alert_id": "alert_1740816000000_1_k3j9x0a2b",
                        "parameter": "pH",
                        "type": "error",
                        "severity": "high",
                        "title": "pH Critical",
                        "value": 9.4,
                        "occurrence_count": 3,
                    }
                ],
                "counts": {"high": 1, "medium": 0, "low": 0, "total": 1},
            }
        }
    }


class HomepageResponse(BaseModel):
    """Response model for the homepage endpoint."""

    alerts: List[HomepageAlert]
    total_active: int = 0


class RefreshResponse(BaseModel):
    """Summary of a refresh cycle."""

    reason: str
    started_at: datetime
    completed_at: datetime
    readings: int = 0
    skipped: bool = False
    degraded: bool = False
    error: Optional[str] = None
    active_alerts: int = 0
    new_alerts: int = 0
    resolved_alerts: int = 0
    synced: int = 0
    sync_errors: int = 0


def _manager(request: Request) -> AlertManager:
    return request.app.state.manager


def _parse_severities(severity: Optional[str]) -> Optional[List[AlertSeverity]]:
    if not severity:
        return None
    wanted = []
    for item in severity.split(","):
        item = item.strip().lower()
        if not item:
            continue
        try:
            wanted.append(AlertSeverity(item))
        except ValueError:
            raise HTTPException(
                status_code=422,
                detail=f"Unknown severity {item!r}; expected high, medium or low",
            ) from None
    return wanted or None


@router.get(
    "/alerts",
    response_model=AlertsResponse,
    summary="Get active alerts",
    description="Active alerts ordered by severity, then most recently seen.",
)
async def get_alerts(
    request: Request,
    severity: Optional[str] = Query(
        None,
        description="Severity filter: 'high', 'medium', 'low', or comma-separated list",
    ),
    parameter: Optional[str] = Query(
        None,
        description="Parameter filter, e.g. 'pH' (case-insensitive)",
    ),
) -> AlertsResponse:
    """
    Get active alerts.

    Args:
        severity: Severity filter.
        parameter: Parameter filter.

    Returns:
        AlertsResponse: Filtered alerts with counts by severity.
    """
    severities = _parse_severities(severity)

    alerts = []
    for alert in _manager(request).get_active_alerts():
        if severities and alert.severity not in severities:
            continue
        if parameter and alert.parameter.lower() != parameter.lower():
            continue
        alerts.append(alert)

    counts = AlertCountsModel(
        high=sum(1 for a in alerts if a.severity == AlertSeverity.HIGH),
        medium=sum(1 for a in alerts if a.severity == AlertSeverity.MEDIUM),
        low=sum(1 for a in alerts if a.severity == AlertSeverity.LOW),
        total=len(alerts),
    )
    return AlertsResponse(alerts=alerts, counts=counts)


@router.get(
    "/alerts/homepage",
    response_model=HomepageResponse,
    summary="Get homepage alerts",
)
async def get_homepage_alerts(
    request: Request,
    limit: Optional[int] = Query(
        None,
        description="Maximum number of alerts (engine default if omitted)",
        ge=0,
        le=50,
    ),
) -> HomepageResponse:
    """Top active alerts with a short display string each."""
    manager = _manager(request)
    return HomepageResponse(
        alerts=manager.get_homepage_alerts(limit),
        total_active=manager.get_active_count(),
    )


@router.get(
    "/alerts/history",
    response_model=HistoryPage,
    summary="Get alert history",
    description="Stored alerts, deduplicated and grouped into Today, Yesterday, This Week and Older.",
)
async def get_alert_history(
    request: Request,
    alert_type: Optional[str] = Query(
        None,
        alias="type",
        description="Type filter: 'error', 'warning', 'info', 'success' or 'all'",
    ),
    severity: Optional[str] = Query(
        None,
        description="Severity filter: 'high', 'medium', 'low' or 'all'",
    ),
    parameter: Optional[str] = Query(
        None,
        description="Parameter filter or 'all'",
    ),
    refresh: bool = Query(
        False,
        description="Bypass the history cache",
    ),
) -> HistoryPage:
    """
    Get sectioned alert history.

    Raises:
        HTTPException: 503 if no history service is configured or the store
            is unreachable with nothing cached.
    """
    history = request.app.state.history
    if history is None:
        raise HTTPException(status_code=503, detail="Alert history is not available")

    try:
        return await history.get_sections(
            alert_type=alert_type,
            severity=severity,
            parameter=parameter,
            use_cache=not refresh,
        )
    except Exception as e:
        logger.error("get_alert_history_error", error=str(e))
        raise HTTPException(status_code=503, detail="Alert history is temporarily unavailable") from e


@router.get(
    "/statistics",
    response_model=AlertStatistics,
    summary="Get alert statistics",
)
async def get_statistics(request: Request) -> AlertStatistics:
    """Active alert counters, sync backlog and last processing time."""
    return _manager(request).get_statistics()


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    summary="Refresh alerts",
    description="Runs a refresh cycle, or joins the one already in flight.",
)
async def refresh_alerts(request: Request) -> RefreshResponse:
    """
    Trigger a refresh.

    Raises:
        HTTPException: 503 if no refresher is configured.
    """
    refresher = request.app.state.refresher
    if refresher is None:
        raise HTTPException(status_code=503, detail="Refresh is not available")

    outcome = await refresher.refresh("api")
    return RefreshResponse(
        reason=outcome.reason,
        started_at=outcome.started_at,
        completed_at=outcome.completed_at,
        readings=outcome.readings,
        skipped=outcome.skipped,
        degraded=outcome.degraded,
        error=outcome.error,
        active_alerts=len(outcome.active_alerts),
        new_alerts=outcome.new_alerts,
        resolved_alerts=outcome.resolved_alerts,
        synced=outcome.sync.synced,
        sync_errors=outcome.sync.errors,
    )
