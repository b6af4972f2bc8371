"""
Async Redis client for the recent alerts mirror.

This module provides a Redis client that keeps a short-lived copy of newly
created alerts so that display surfaces can read recent alerts without
querying PostgreSQL.

Key Patterns:
    - Alerts: `alert:{alert_id}` (JSON string with TTL)
    - Recent index: `alerts:recent` (sorted set scored by created_at)
    - Pub/Sub channel: `updates:alerts`

Example:
    >>> from pureflow.config.models import RedisConnectionConfig
    >>> from pureflow.storage.redis_client import RedisClient
    >>>
    >>> client = RedisClient(RedisConnectionConfig(url="redis://localhost:6379"))
    >>> await client.connect()
    >>> await client.set_alerts(new_alerts)
    >>> recent = await client.get_recent_alerts(limit=20)
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from pureflow.config.models import RedisConnectionConfig, RedisStorageConfig
from pureflow.models.alerts import Alert

logger = structlog.get_logger(__name__)


class RedisClientError(Exception):
    """Base exception for Redis client errors."""

    pass


class RedisConnectionException(RedisClientError):
    """Raised when Redis connection fails."""

    pass


class RedisOperationError(RedisClientError):
    """Raised when a Redis operation fails."""

    pass


class RedisClient:
    """
    Async Redis client for mirrored alerts.

    Attributes:
        config: Redis connection configuration.
        storage_config: Redis storage configuration (TTL, index size).
        _pool: Connection pool for efficient connection reuse.
        _client: Redis client instance.
        _connected: Whether the client is connected.

    Example:
        >>> client = RedisClient(RedisConnectionConfig(url="redis://localhost:6379"))
        >>> await client.connect()
        >>> try:
        ...     await client.set_alerts(alerts)
        ... finally:
        ...     await client.disconnect()
    """

    # Key prefixes
    KEY_ALERT = "alert"
    KEY_ALERTS_RECENT = "alerts:recent"

    # Pub/sub channels
    CHANNEL_ALERTS = "updates:alerts"

    def __init__(
        self,
        config: RedisConnectionConfig,
        storage_config: Optional[RedisStorageConfig] = None,
    ) -> None:
        """
        Initialize the Redis client.

        Args:
            config: Redis connection configuration containing URL, db, and pool settings.
            storage_config: Optional mirror settings. Defaults to
                           RedisStorageConfig() if not provided.
        """
        self.config = config
        self.storage_config = storage_config or RedisStorageConfig()
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None  # type: ignore[type-arg]
        self._connected: bool = False

        logger.info(
            "redis_client_initialized",
            url=config.url,
            db=config.db,
            max_connections=config.max_connections,
        )

    @property
    def is_connected(self) -> bool:
        """
        Check if the client is connected to Redis.

        Returns:
            bool: True if connected, False otherwise.
        """
        return self._connected and self._client is not None

    async def connect(self) -> None:
        """
        Establish connection to Redis.

        Raises:
            RedisConnectionException: If connection fails.
        """
        if self._connected:
            logger.warning("redis_already_connected")
            return

        try:
            self._pool = ConnectionPool.from_url(
                self.config.url,
                db=self.config.db,
                max_connections=self.config.max_connections,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_timeout,
                decode_responses=True,
            )
            self._client = Redis(connection_pool=self._pool)

            await self._client.ping()
            self._connected = True

            logger.info(
                "redis_connected",
                url=self.config.url,
                db=self.config.db,
            )

        except (RedisConnectionError, RedisTimeoutError, OSError) as e:
            self._connected = False
            logger.error(
                "redis_connection_failed",
                url=self.config.url,
                error=str(e),
            )
            raise RedisConnectionException(
                f"Failed to connect to Redis at {self.config.url}: {e}"
            ) from e

    async def disconnect(self) -> None:
        """
        Close Redis connection and release resources.

        Safe to call multiple times.
        """
        if self._client is not None:
            try:
                await self._client.aclose()
            except RedisError as e:
                logger.warning("redis_close_error", error=str(e))
            finally:
                self._client = None

        if self._pool is not None:
            try:
                await self._pool.aclose()
            except Exception as e:
                logger.warning("redis_pool_close_error", error=str(e))
            finally:
                self._pool = None

        self._connected = False
        logger.info("redis_disconnected")

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            bool: True if Redis responds to PING, False otherwise.
        """
        if not self._client:
            return False

        try:
            await self._client.ping()
            return True
        except RedisError as e:
            logger.warning("redis_ping_failed", error=str(e))
            return False

    def _require_connection(self) -> Redis:  # type: ignore[type-arg]
        """
        Ensure client is connected and return the Redis instance.

        Raises:
            RedisConnectionException: If not connected.
        """
        if not self._connected or self._client is None:
            raise RedisConnectionException("Redis client is not connected")
        return self._client

    # =========================================================================
    # ALERTS
    # =========================================================================

    def _alert_key(self, alert_id: str) -> str:
        """Generate Redis key for an alert."""
        return f"{self.KEY_ALERT}:{alert_id}"

    async def set_alerts(
        self,
        alerts: Sequence[Alert],
        ttl_seconds: Optional[int] = None,
    ) -> None:
        """
        Mirror alerts in one transactional pipeline.

        Each alert is stored as JSON with a TTL, indexed in the recent
        sorted set (trimmed to recent_alerts_limit) and announced on the
        alerts channel.

        Args:
            alerts: Alerts to mirror.
            ttl_seconds: Key TTL (defaults to storage_config.alert_ttl_seconds).

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        if not alerts:
            return

        client = self._require_connection()
        ttl = ttl_seconds or self.storage_config.alert_ttl_seconds
        keep = self.storage_config.recent_alerts_limit

        try:
            async with client.pipeline(transaction=True) as pipe:
                for alert in alerts:
                    pipe.set(self._alert_key(alert.alert_id), alert.model_dump_json(), ex=ttl)
                    pipe.zadd(
                        self.KEY_ALERTS_RECENT,
                        {alert.alert_id: alert.created_at.timestamp()},
                    )
                    pipe.publish(self.CHANNEL_ALERTS, alert.alert_id)
                # Keep only the newest entries in the index
                pipe.zremrangebyrank(self.KEY_ALERTS_RECENT, 0, -(keep + 1))
                await pipe.execute()

            logger.debug("alerts_mirrored", count=len(alerts), ttl_seconds=ttl)

        except RedisError as e:
            logger.error(
                "alert_mirror_failed",
                count=len(alerts),
                error=str(e),
            )
            raise RedisOperationError(f"Failed to mirror {len(alerts)} alerts: {e}") from e

    async def get_alert(self, alert_id: str) -> Optional[Alert]:
        """
        Retrieve a mirrored alert by ID.

        Args:
            alert_id: The unique alert identifier.

        Returns:
            Optional[Alert]: The alert if found (and not expired), None otherwise.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        client = self._require_connection()

        try:
            data = await client.get(self._alert_key(alert_id))
        except RedisError as e:
            logger.error("alert_retrieve_failed", alert_id=alert_id, error=str(e))
            raise RedisOperationError(f"Failed to retrieve alert {alert_id}: {e}") from e

        if data is None:
            return None
        return Alert.model_validate_json(data)

    async def get_recent_alerts(self, limit: int = 50) -> List[Alert]:
        """
        Retrieve the most recently mirrored alerts.

        Index entries whose alert key has expired are skipped.

        Args:
            limit: Maximum number of alerts.

        Returns:
            List[Alert]: Alerts, newest first.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        client = self._require_connection()

        try:
            alert_ids = await client.zrevrange(self.KEY_ALERTS_RECENT, 0, limit - 1)
            if not alert_ids:
                return []
            values = await client.mget([self._alert_key(aid) for aid in alert_ids])
        except RedisError as e:
            logger.error("recent_alerts_retrieve_failed", error=str(e))
            raise RedisOperationError(f"Failed to retrieve recent alerts: {e}") from e

        alerts: List[Alert] = []
        for data in values:
            if data is None:
                continue
            try:
                alerts.append(Alert.model_validate_json(data))
            except Exception as e:
                logger.warning("alert_parse_failed", error=str(e))

        logger.debug("recent_alerts_retrieved", count=len(alerts))
        return alerts
