"""
Sync queue for at-least-once alert persistence.

This module provides the SyncQueue class, a FIFO buffer of newly created
alerts waiting to be written to the durable store.

Retry and eviction policy:
    - flush() drains the whole queue into one write.
    - On failure the batch goes back to the front of the queue in its
      original order, so the next flush retries it first.
    - The queue holds at most ``capacity`` alerts. When it is over
      capacity the oldest pending alerts are evicted, logged and counted.
    - Duplicate writes on retry are acceptable; the sink dedupes by id.

Example:
    >>> queue = SyncQueue(sink=storage, capacity=1000)
    >>> queue.enqueue(new_alerts)
    >>> result = await queue.flush()
    >>> print(result.synced, result.errors)
"""

import asyncio
from collections import deque
from typing import Deque, Iterable, List

import structlog

from pureflow.interfaces.collaborators import AlertSink
from pureflow.models.alerts import Alert, SyncResult

logger = structlog.get_logger(__name__)


DEFAULT_QUEUE_CAPACITY = 1000


class SyncQueue:
    """
    Bounded FIFO of alerts awaiting persistence.

    Attributes:
        sink: Collaborator that writes alert batches.
        capacity: Maximum number of pending alerts.
        dropped: Total alerts evicted because the queue was full.

    Example:
        >>> queue = SyncQueue(sink)
        >>> queue.enqueue([alert])
        >>> len(queue)
        1
    """

    def __init__(self, sink: AlertSink, capacity: int = DEFAULT_QUEUE_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.sink = sink
        self.capacity = capacity
        self.dropped = 0
        self._pending: Deque[Alert] = deque()

    def enqueue(self, alerts: Iterable[Alert]) -> None:
        """
        Append alerts in order, evicting the oldest ones when over capacity.

        Args:
            alerts: Newly created alerts.
        """
        self._pending.extend(alerts)
        self._enforce_capacity()

    async def flush(self) -> SyncResult:
        """
        Write every pending alert in one batch.

        Never raises: a failed write is logged and the batch is requeued at
        the front for the next attempt.

        Returns:
            SyncResult: synced, errors and total counts for this attempt.
        """
        if not self._pending:
            return SyncResult(synced=0, errors=0, total=0)

        batch: List[Alert] = list(self._pending)
        self._pending.clear()

        try:
            await self.sink.write(batch)
        except asyncio.CancelledError:
            self._pending.extendleft(reversed(batch))
            self._enforce_capacity()
            raise
        except Exception as e:
            self._pending.extendleft(reversed(batch))
            self._enforce_capacity()
            logger.error(
                "alert_sync_failed",
                batch_size=len(batch),
                pending=len(self._pending),
                error=str(e),
                error_type=type(e).__name__,
            )
            return SyncResult(synced=0, errors=len(batch), total=len(batch))

        logger.info(
            "alerts_synced",
            count=len(batch),
            alert_ids=[alert.alert_id for alert in batch],
        )
        return SyncResult(synced=len(batch), errors=0, total=len(batch))

    @property
    def pending(self) -> List[Alert]:
        """Snapshot of pending alerts, oldest first."""
        return list(self._pending)

    def clear(self) -> None:
        """Discard all pending alerts."""
        self._pending.clear()

    def _enforce_capacity(self) -> None:
        overflow = len(self._pending) - self.capacity
        if overflow <= 0:
            return
        evicted = [self._pending.popleft() for _ in range(overflow)]
        self.dropped += overflow
        logger.warning(
            "sync_queue_overflow",
            evicted=overflow,
            evicted_ids=[alert.alert_id for alert in evicted],
            capacity=self.capacity,
        )

    def __len__(self) -> int:
        return len(self._pending)
