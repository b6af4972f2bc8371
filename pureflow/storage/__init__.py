"""
Storage clients for the alert engine.

This module provides clients for PostgreSQL (alert history and sensor
readings) and Redis (recent alerts mirror).

Components:
    postgres_client: Async PostgreSQL client for alerts and readings
    redis_client: Async Redis client for the recent alerts mirror
    sources: ReadingSource implementations over the clients
"""

from pureflow.storage.redis_client import (
    RedisClient,
    RedisClientError,
    RedisConnectionException,
    RedisOperationError,
)
from pureflow.storage.postgres_client import (
    PostgresClient,
    PostgresClientError,
    PostgresConnectionException,
    PostgresOperationError,
)
from pureflow.storage.sources import PostgresReadingSource

__all__: list[str] = [
    # Redis
    "RedisClient",
    "RedisClientError",
    "RedisConnectionException",
    "RedisOperationError",
    # PostgreSQL
    "PostgresClient",
    "PostgresClientError",
    "PostgresConnectionException",
    "PostgresOperationError",
    # Sources
    "PostgresReadingSource",
]
