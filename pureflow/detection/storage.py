"""
Alert storage for PostgreSQL with an optional Redis mirror.

This module provides the AlertStorage class, the AlertSink used by the sync
queue. PostgreSQL holds the durable alert history; Redis, when configured,
holds a short-lived copy of recent alerts for fast display reads.

Key Features:
    - Idempotent batch inserts keyed by alert_id
    - Every write bounded by a timeout
    - All storage failures surfaced as PersistenceError
    - Redis mirror is best-effort and never fails a write

Example:
    >>> storage = AlertStorage(postgres_client, redis_client, timeout_seconds=10)
    >>> queue = SyncQueue(storage)
    >>> await queue.flush()
"""

import asyncio
from typing import List, Optional

import structlog

from pureflow.errors import PersistenceError
from pureflow.interfaces.collaborators import AlertSink
from pureflow.models.alerts import Alert
from pureflow.storage.postgres_client import PostgresClient, PostgresClientError
from pureflow.storage.redis_client import RedisClient, RedisClientError

logger = structlog.get_logger(__name__)


DEFAULT_TIMEOUT_SECONDS = 10.0


class AlertStorage(AlertSink):
    """
    Durable alert sink: PostgreSQL history plus optional Redis mirror.

    Attributes:
        postgres_client: PostgreSQL client for historical storage.
        redis_client: Optional Redis client for the recent alerts mirror.
        timeout_seconds: Upper bound on one PostgreSQL write.

    Example:
        >>> storage = AlertStorage(postgres_client)
        >>> await storage.write(alerts)
    """

    def __init__(
        self,
        postgres_client: PostgresClient,
        redis_client: Optional[RedisClient] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initialize the alert storage.

        Args:
            postgres_client: Connected PostgreSQL client.
            redis_client: Connected Redis client, or None to skip mirroring.
            timeout_seconds: Upper bound on one PostgreSQL write.
        """
        self.postgres_client = postgres_client
        self.redis_client = redis_client
        self.timeout_seconds = timeout_seconds

        logger.debug(
            "alert_storage_initialized",
            redis_mirror=redis_client is not None,
            timeout_seconds=timeout_seconds,
        )

    async def write(self, alerts: List[Alert]) -> None:
        """
        Write a batch of alerts.

        Args:
            alerts: Alerts to write.

        Raises:
            PersistenceError: If the PostgreSQL write fails or times out.
        """
        if not alerts:
            return

        try:
            await asyncio.wait_for(
                self.postgres_client.insert_alerts(alerts),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "alert_write_timeout",
                count=len(alerts),
                timeout_seconds=self.timeout_seconds,
            )
            raise PersistenceError(
                f"Writing {len(alerts)} alerts timed out after {self.timeout_seconds}s",
                alert_count=len(alerts),
                cause=e,
            ) from e
        except PostgresClientError as e:
            logger.error(
                "alert_write_failed",
                count=len(alerts),
                error=str(e),
            )
            raise PersistenceError(
                f"Failed to write {len(alerts)} alerts: {e}",
                alert_count=len(alerts),
                cause=e,
            ) from e

        await self._mirror(alerts)

        logger.info(
            "alerts_saved",
            count=len(alerts),
            alert_ids=[alert.alert_id for alert in alerts],
        )

    async def _mirror(self, alerts: List[Alert]) -> None:
        if self.redis_client is None:
            return
        try:
            await self.redis_client.set_alerts(alerts)
        except RedisClientError as e:
            logger.warning(
                "alert_mirror_skipped",
                count=len(alerts),
                error=str(e),
            )

    async def get_recent_alerts(self, limit: int = 50) -> List[Alert]:
        """
        Get recently stored alerts.

        Served from the Redis mirror when available, else from PostgreSQL.

        Args:
            limit: Maximum number of alerts.

        Returns:
            List[Alert]: Alerts, newest first.

        Raises:
            PersistenceError: If PostgreSQL cannot be queried.
        """
        if self.redis_client is not None:
            try:
                return await self.redis_client.get_recent_alerts(limit=limit)
            except RedisClientError as e:
                logger.warning("alert_mirror_read_failed", error=str(e))

        try:
            return await self.postgres_client.query_alerts(limit=limit)
        except PostgresClientError as e:
            raise PersistenceError(f"Failed to query recent alerts: {e}", cause=e) from e


def create_alert_storage(
    postgres_client: PostgresClient,
    redis_client: Optional[RedisClient] = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> AlertStorage:
    """
    Factory function to create an AlertStorage instance.

    Args:
        postgres_client: Connected PostgreSQL client.
        redis_client: Connected Redis client, or None.
        timeout_seconds: Upper bound on one PostgreSQL write.

    Returns:
        AlertStorage: Configured storage instance.
    """
    return AlertStorage(
        postgres_client=postgres_client,
        redis_client=redis_client,
        timeout_seconds=timeout_seconds,
    )
