"""
Alert refresher: fetch readings, process them, persist new alerts.

This module provides the AlertRefresher, which drives the AlertManager from
a ReadingSource. Refreshes come from a polling loop and from on-demand
requests (e.g. the HTTP refresh endpoint).

Concurrency model:
    - One refresh cycle runs at a time. A refresh requested while a cycle
      is in flight awaits that cycle and receives its outcome.
    - A caller that is cancelled while waiting does not cancel the cycle.
    - A cycle never raises: source or processing failures produce a
      degraded outcome that still carries the current active alerts.

Example:
    >>> refresher = AlertRefresher(manager, source, poll_interval_seconds=30)
    >>> outcome = await refresher.refresh("manual")
    >>> print(outcome.new_alerts, outcome.degraded)
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional

import structlog
from pydantic import BaseModel, Field

from pureflow.detection.manager import AlertManager
from pureflow.interfaces.collaborators import ReadingSource
from pureflow.models.alerts import Alert, SyncResult

logger = structlog.get_logger(__name__)


DEFAULT_POLL_INTERVAL_SECONDS = 30.0
DEFAULT_READING_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshOutcome(BaseModel):
    """
    Result of one refresh cycle.

    Attributes:
        reason: Why the cycle ran (scheduled, manual, api, ...).
        started_at: Cycle start time.
        completed_at: Cycle end time.
        readings: Number of readings fetched.
        skipped: True if the batch repeated an already processed one.
        degraded: True if the source or processing failed.
        error: Error text for a degraded cycle.
        active_alerts: Active alerts after the cycle.
        new_alerts: Number of alerts created.
        resolved_alerts: Number of alerts resolved.
        sync: Result of the persistence flush.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    reason: str = Field(..., description="Why the cycle ran")
    started_at: datetime = Field(..., description="Cycle start time")
    completed_at: datetime = Field(..., description="Cycle end time")
    readings: int = Field(default=0, ge=0)
    skipped: bool = Field(default=False)
    degraded: bool = Field(default=False)
    error: Optional[str] = Field(default=None)
    active_alerts: List[Alert] = Field(default_factory=list)
    new_alerts: int = Field(default=0, ge=0)
    resolved_alerts: int = Field(default=0, ge=0)
    sync: SyncResult = Field(default_factory=SyncResult)


class AlertRefresher:
    """
    Runs refresh cycles against the alert manager, one at a time.

    Attributes:
        manager: The AlertManager being driven.
        source: Where readings come from.
        poll_interval_seconds: Delay between scheduled cycles.
        reading_limit: Readings fetched per cycle.
        cycles: Number of cycles started.

    Example:
        >>> refresher = AlertRefresher(manager, source)
        >>> first, second = await asyncio.gather(
        ...     refresher.refresh("a"), refresher.refresh("b")
        ... )
        >>> first is second
        True
    """

    def __init__(
        self,
        manager: AlertManager,
        source: ReadingSource,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        reading_limit: int = DEFAULT_READING_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.manager = manager
        self.source = source
        self.poll_interval_seconds = poll_interval_seconds
        self.reading_limit = reading_limit
        self.cycles = 0
        self._clock = clock
        self._in_flight: Optional["asyncio.Task[RefreshOutcome]"] = None

    @property
    def in_flight(self) -> bool:
        """True while a refresh cycle is running."""
        return self._in_flight is not None and not self._in_flight.done()

    async def refresh(self, reason: str = "manual") -> RefreshOutcome:
        """
        Run a refresh cycle, or join the one already running.

        Args:
            reason: Label recorded on the outcome and in logs.

        Returns:
            RefreshOutcome: Outcome of the cycle this call ran or joined.
        """
        task = self._in_flight
        if task is None or task.done():
            self.cycles += 1
            task = asyncio.create_task(
                self._run_cycle(reason),
                name=f"alert-refresh-{self.cycles}",
            )
            task.add_done_callback(self._clear_in_flight)
            self._in_flight = task
        else:
            logger.debug("refresh_coalesced", reason=reason)

        return await asyncio.shield(task)

    def _clear_in_flight(self, task: "asyncio.Task[RefreshOutcome]") -> None:
        if self._in_flight is task:
            self._in_flight = None

    async def _run_cycle(self, reason: str) -> RefreshOutcome:
        """
        Fetch, process and flush once.

        Returns:
            RefreshOutcome: Normal or degraded outcome; never raises.
        """
        started_at = self._clock()
        logger.debug("refresh_started", reason=reason)

        try:
            readings = await self.source.fetch_recent(self.reading_limit)
        except Exception as e:
            logger.error("reading_fetch_failed", reason=reason, error=str(e))
            return await self._degraded(reason, started_at, f"reading fetch failed: {e}")

        try:
            result = self.manager.process_batch(readings)
        except Exception as e:
            # Already logged by the manager with the traceback
            return await self._degraded(
                reason, started_at, f"batch processing failed: {e}", readings=len(readings)
            )

        sync = await self.manager.flush()

        outcome = RefreshOutcome(
            reason=reason,
            started_at=started_at,
            completed_at=self._clock(),
            readings=len(readings),
            skipped=result.skipped,
            active_alerts=result.active_alerts,
            new_alerts=len(result.new_alerts),
            resolved_alerts=len(result.resolved_alerts),
            sync=sync,
        )

        logger.info(
            "refresh_completed",
            reason=reason,
            readings=outcome.readings,
            skipped=outcome.skipped,
            new=outcome.new_alerts,
            resolved=outcome.resolved_alerts,
            active=len(outcome.active_alerts),
            synced=sync.synced,
            sync_errors=sync.errors,
        )
        return outcome

    async def _degraded(
        self,
        reason: str,
        started_at: datetime,
        error: str,
        readings: int = 0,
    ) -> RefreshOutcome:
        # Pending alerts from earlier cycles still get their retry
        sync = await self.manager.flush()
        return RefreshOutcome(
            reason=reason,
            started_at=started_at,
            completed_at=self._clock(),
            readings=readings,
            degraded=True,
            error=error,
            active_alerts=self.manager.get_active_alerts(),
            sync=sync,
        )

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """
        Refresh on a fixed interval until shutdown is requested.

        Each cycle is awaited fully before the wait for the next one starts.

        Args:
            shutdown_event: Set to stop the loop.
        """
        logger.info(
            "refresher_started",
            poll_interval_seconds=self.poll_interval_seconds,
            reading_limit=self.reading_limit,
        )

        while not shutdown_event.is_set():
            await self.refresh("scheduled")
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=self.poll_interval_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("refresher_stopped", cycles=self.cycles)
