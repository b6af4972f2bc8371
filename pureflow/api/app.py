"""
FastAPI application for the PureFlow alert display surface.

The application serves the in-memory alert state owned by the engine. It
does not own the manager, refresher or storage clients: the composition
root builds them and hands them to ``create_app``, which keeps them in
``app.state``.

Routes:
    /api/alerts, /api/alerts/homepage, /api/alerts/history
    /api/statistics, /api/refresh, /api/health
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pureflow.api.alerts import router as alerts_router
from pureflow.api.health import router as health_router
from pureflow.detection.history import HistoricalAlertsService
from pureflow.detection.manager import AlertManager
from pureflow.detection.refresher import AlertRefresher
from pureflow.storage.postgres_client import PostgresClient

logger = structlog.get_logger(__name__)


def create_app(
    manager: AlertManager,
    refresher: Optional[AlertRefresher] = None,
    history: Optional[HistoricalAlertsService] = None,
    postgres_client: Optional[PostgresClient] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        manager: Alert manager whose state is served.
        refresher: Enables POST /api/refresh when given.
        history: Enables GET /api/alerts/history when given.
        postgres_client: Reported on by GET /api/health when given.

    Returns:
        FastAPI: Configured application.

    Example:
        >>> app = create_app(manager, refresher=refresher)
        >>> uvicorn.run(app, host="0.0.0.0", port=8000)
    """
    app = FastAPI(
        title="PureFlow Alerts",
        description="Water-quality alert engine: active alerts, history and statistics",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.manager = manager
    app.state.refresher = refresher
    app.state.history = history
    app.state.postgres_client = postgres_client
    app.state.start_time = datetime.now(timezone.utc)

    app.include_router(alerts_router, prefix="/api", tags=["Alerts"])
    app.include_router(health_router, prefix="/api", tags=["Health"])

    logger.info(
        "fastapi_app_created",
        refresh_enabled=refresher is not None,
        history_enabled=history is not None,
    )
    return app
