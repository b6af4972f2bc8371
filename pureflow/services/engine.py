"""
Alert engine service entry point.

This service is responsible for:
- Polling recent sensor readings from PostgreSQL
- Evaluating them against the active threshold profile
- Maintaining the active alert set and persisting new alerts
- Serving active alerts, history and statistics over HTTP

Usage:
    pureflow-engine

    Or as a module:
    python -m pureflow.services.engine

Environment Variables:
    CONFIG_PATH: Path to config directory (default: config)
    DATABASE_URL: PostgreSQL connection URL
    REDIS_URL: Redis connection URL (used when the Redis mirror is enabled)
    LOG_LEVEL: Logging level (default: INFO)
    WATER_PROFILE: Threshold profile to use (default: from thresholds.yaml)
"""

import asyncio
import os
import sys
from typing import Optional

import structlog
import uvicorn

from pureflow.api import create_app
from pureflow.detection.history import HistoricalAlertsService
from pureflow.detection.manager import AlertManager, create_alert_manager
from pureflow.detection.refresher import AlertRefresher
from pureflow.detection.storage import AlertStorage, create_alert_storage
from pureflow.services import ServiceRunner, setup_logging
from pureflow.storage.sources import PostgresReadingSource

logger = structlog.get_logger(__name__)


class AlertEngineService(ServiceRunner):
    """
    Composition root for the alert engine.

    Builds one AlertManager and passes it to the refresher and the HTTP
    application; nothing else holds engine state.

    Attributes:
        alert_storage: Durable sink for new alerts.
        alert_manager: Active alert state.
        refresher: Poll loop and on-demand refresh coordinator.
        history: Stored alert history service.
        server: Uvicorn server for the HTTP API (None if disabled).
    """

    def __init__(self, config_path: str = "config") -> None:
        """Initialize the alert engine service."""
        super().__init__(config_path)
        self.alert_storage: Optional[AlertStorage] = None
        self.alert_manager: Optional[AlertManager] = None
        self.refresher: Optional[AlertRefresher] = None
        self.history: Optional[HistoricalAlertsService] = None
        self.server: Optional[uvicorn.Server] = None

    @property
    def service_name(self) -> str:
        """Return service name."""
        return "alert-engine"

    async def _initialize(self) -> None:
        """Build the engine components."""
        if self.config is None or self.postgres_client is None:
            raise RuntimeError("Service not properly initialized")

        engine = self.config.engine
        thresholds = self.config.thresholds.get_threshold_set()

        self.alert_storage = create_alert_storage(
            postgres_client=self.postgres_client,
            redis_client=self.redis_client,
            timeout_seconds=engine.persistence_timeout_seconds,
        )

        self.alert_manager = create_alert_manager(
            thresholds=thresholds,
            sink=self.alert_storage,
            grace_period_seconds=engine.grace_period_seconds,
            history_capacity=engine.history_capacity,
            queue_capacity=engine.sync_queue_capacity,
            homepage_limit=engine.homepage_limit,
        )

        source = PostgresReadingSource(self.postgres_client, parameters=thresholds.parameters)
        self.refresher = AlertRefresher(
            manager=self.alert_manager,
            source=source,
            poll_interval_seconds=engine.poll_interval_seconds,
            reading_limit=engine.reading_limit,
        )

        self.history = HistoricalAlertsService(
            self.postgres_client,
            cache_ttl_seconds=engine.history_cache_ttl_seconds,
        )

        if self.config.api.enabled:
            app = create_app(
                self.alert_manager,
                refresher=self.refresher,
                history=self.history,
                postgres_client=self.postgres_client,
            )
            server_config = uvicorn.Config(
                app,
                host=self.config.api.host,
                port=self.config.api.port,
                log_level=self.config.logging.level.value.lower(),
                access_log=False,
            )
            self.server = uvicorn.Server(server_config)
            # The service owns SIGINT/SIGTERM handling
            self.server.install_signal_handlers = lambda: None

        self.logger.info(
            "engine_components_initialized",
            profile=self.config.thresholds.active_profile,
            parameters=thresholds.parameters,
            redis_mirror=self.redis_client is not None,
            api_enabled=self.server is not None,
        )

    async def _run(self) -> None:
        """Run the poll loop and the HTTP server until shutdown."""
        if self.refresher is None:
            raise RuntimeError("Service not properly initialized")

        tasks = [asyncio.create_task(self.refresher.run(self.shutdown_event), name="refresher")]
        if self.server is not None:
            tasks.append(asyncio.create_task(self.server.serve(), name="api-server"))

        shutdown_task = asyncio.create_task(self.shutdown_event.wait(), name="shutdown")

        try:
            done, _ = await asyncio.wait(
                tasks + [shutdown_task],
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in done:
                if task is shutdown_task or task.cancelled():
                    continue
                if task.exception() is not None:
                    self.logger.error(
                        "engine_task_failed",
                        task=task.get_name(),
                        error=str(task.exception()),
                    )
                else:
                    self.logger.warning("engine_task_exited", task=task.get_name())
        finally:
            self.shutdown_event.set()
            if self.server is not None:
                self.server.should_exit = True
            await asyncio.gather(*tasks, shutdown_task, return_exceptions=True)

    async def _cleanup(self) -> None:
        """Flush alerts still waiting to be persisted."""
        if self.alert_manager is None:
            return

        result = await self.alert_manager.flush()
        self.logger.info(
            "final_flush_complete",
            synced=result.synced,
            errors=result.errors,
        )


async def main() -> None:
    """Main entry point."""
    # Set up initial logging
    setup_logging()

    config_path = os.getenv("CONFIG_PATH", "config")

    logger.info(
        "alert_engine_service_starting",
        version="0.1.0",
        config_path=config_path,
    )

    service = AlertEngineService(config_path=config_path)

    try:
        await service.run()
    except Exception as e:
        logger.error("service_failed", error=str(e))
        sys.exit(1)


def cli() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
