"""
Service lifecycle and logging setup for PureFlow processes.

ServiceRunner owns the parts every long-running PureFlow process shares:
configuration loading, structured logging, storage connections and a
signal-driven shutdown event. Subclasses supply ``service_name``,
``_initialize`` and ``_run``, and optionally ``_cleanup``.

Lifecycle of ``run()``:
    1. Load AppConfig from the config directory
    2. Reconfigure logging from the ``logging`` section
    3. Connect PostgreSQL, and Redis when the mirror is enabled
    4. ``_initialize()``, then ``_run()`` until it returns or shutdown is requested
    5. ``_cleanup()``, then disconnect storage

Example:
    >>> class MyService(ServiceRunner):
    ...     @property
    ...     def service_name(self) -> str:
    ...         return "my-service"
    ...
    ...     async def _initialize(self) -> None: ...
    ...
    ...     async def _run(self) -> None:
    ...         await self.shutdown_event.wait()
"""

import asyncio
import logging
import os
import signal
from abc import ABC, abstractmethod
from typing import Optional, Union

import structlog

from pureflow.config import AppConfig, LogFormat, load_config
from pureflow.storage.postgres_client import PostgresClient
from pureflow.storage.redis_client import RedisClient


def setup_logging(
    level: Optional[str] = None,
    fmt: Union[LogFormat, str] = LogFormat.JSON,
) -> None:
    """
    Configure structlog over the standard library logging module.

    Args:
        level: Log level name. Defaults to the LOG_LEVEL environment
            variable, then INFO.
        fmt: "json" for machine-readable lines, "text" for console output.
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    if LogFormat(fmt) == LogFormat.TEXT:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level, logging.INFO),
        force=True,
    )

    # Reduce noise from uvicorn access logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class ServiceRunner(ABC):
    """
    Base class for long-running PureFlow services.

    Attributes:
        config_path: Directory holding the YAML configuration.
        config: Loaded configuration (set by ``run``).
        postgres_client: Connected PostgreSQL client (set by ``run``).
        redis_client: Connected Redis client when the mirror is enabled.
        shutdown_event: Set by SIGINT/SIGTERM or ``request_shutdown``.
        logger: Logger bound to the service name.
    """

    def __init__(self, config_path: str = "config") -> None:
        self.config_path = config_path
        self.config: Optional[AppConfig] = None
        self.postgres_client: Optional[PostgresClient] = None
        self.redis_client: Optional[RedisClient] = None
        self.shutdown_event = asyncio.Event()
        self.logger = structlog.get_logger(__name__).bind(service=self.service_name)

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Name used in logs."""

    @abstractmethod
    async def _initialize(self) -> None:
        """Build service components once storage is connected."""

    @abstractmethod
    async def _run(self) -> None:
        """Main service body; should return once shutdown_event is set."""

    async def _cleanup(self) -> None:
        """Release service components before storage disconnects."""

    def request_shutdown(self) -> None:
        """Ask the service to stop."""
        if not self.shutdown_event.is_set():
            self.logger.info("shutdown_requested")
            self.shutdown_event.set()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread
                self.logger.debug("signal_handler_unavailable", signal=sig.name)

    async def _connect_storage(self) -> None:
        if self.config is None:
            raise RuntimeError("Configuration not loaded")

        self.postgres_client = PostgresClient(self.config.postgres)
        await self.postgres_client.connect()
        await self.postgres_client.ensure_schema()

        if self.config.storage.redis.enabled:
            self.redis_client = RedisClient(self.config.redis, self.config.storage.redis)
            await self.redis_client.connect()

    async def _disconnect_storage(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.disconnect()
            self.redis_client = None
        if self.postgres_client is not None:
            await self.postgres_client.disconnect()
            self.postgres_client = None

    async def run(self) -> None:
        """
        Run the service until ``_run`` returns or shutdown is requested.

        Raises:
            ConfigLoadError: If the configuration cannot be loaded.
            PostgresConnectionException: If PostgreSQL is unreachable.
            RedisConnectionException: If the mirror is enabled and Redis
                is unreachable.
        """
        self.config = load_config(self.config_path)
        setup_logging(self.config.logging.level.value, self.config.logging.format)
        self._install_signal_handlers()

        try:
            await self._connect_storage()
            await self._initialize()
            self.logger.info("service_started")
            await self._run()
        finally:
            try:
                await self._cleanup()
            finally:
                await self._disconnect_storage()
            self.logger.info("service_stopped")


__all__ = [
    "ServiceRunner",
    "setup_logging",
]
