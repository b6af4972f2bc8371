"""
Abstract base classes for the engine's external collaborators.

The engine depends only on these minimal contracts, so the reading store
and the alert store can be swapped (relational table, document database,
log file) without touching the lifecycle manager.

Example:
    >>> class LogFileSink(AlertSink):
    ...     async def write(self, alerts: List[Alert]) -> None:
    ...         for alert in alerts:
    ...             log_file.write(alert.model_dump_json() + "\\n")
"""

from abc import ABC, abstractmethod
from typing import List

from pureflow.models.alerts import Alert
from pureflow.models.readings import SensorReading


class ReadingSource(ABC):
    """
    Supplies recent sensor readings to the engine.

    The engine treats the result purely as data handed to it; fetching,
    caching and query construction belong to the implementation.
    """

    @abstractmethod
    async def fetch_recent(self, limit: int) -> List[SensorReading]:
        """
        Fetch the most recent readings.

        Args:
            limit: Maximum number of readings to return.

        Returns:
            List[SensorReading]: Readings ordered oldest to newest.

        Raises:
            Exception: Implementation-specific errors; the refresher treats
                any failure as a degraded cycle.
        """
        pass


class AlertSink(ABC):
    """
    Durable store for newly created alerts.

    Writes may be repeated for the same alerts (at-least-once delivery), so
    implementations must be idempotent by ``alert_id``.
    """

    @abstractmethod
    async def write(self, alerts: List[Alert]) -> None:
        """
        Persist a batch of alerts.

        The call must return or fail within the implementation's own
        timeout.

        Args:
            alerts: Alerts to persist, in creation order.

        Raises:
            PersistenceError: If the batch could not be written.
        """
        pass
