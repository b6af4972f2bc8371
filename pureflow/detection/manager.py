"""
Alert manager for alert deduplication and lifecycle management.

This module provides the AlertManager class which turns reading batches
into a stable set of active alerts: it creates alerts for new conditions,
updates alerts whose condition recurs, and resolves alerts whose condition
has been absent for longer than a grace period.

Key Features:
    - Skips batches whose latest reading was already processed
    - At most one active alert per alert signature
    - Grace period hysteresis before resolution (no single-tick flapping)
    - Bounded memory: active alerts plus a fixed-size signature history
    - All-or-nothing commit: a failing batch leaves prior state intact
    - New alerts enriched with recommendations and queued for persistence

Example:
    >>> manager = AlertManager(thresholds=thresholds, sync_queue=SyncQueue(storage))
    >>> result = manager.process_batch(readings)
    >>> for alert in result.new_alerts:
    ...     print(f"New: {alert.title}")
    >>> await manager.flush()
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple
from uuid import uuid4

import structlog

from pureflow.detection.evaluator import (
    RAIN_PARAMETER,
    ThresholdEvaluator,
    build_candidates,
)
from pureflow.detection.recommendations import RecommendationEngine
from pureflow.detection.signatures import (
    DEFAULT_HISTORY_CAPACITY,
    SignatureHistory,
    build_data_signature,
    latest_reading,
)
from pureflow.detection.sync_queue import SyncQueue
from pureflow.interfaces.collaborators import AlertSink
from pureflow.models.alerts import (
    Alert,
    AlertSeverity,
    AlertStatistics,
    BatchResult,
    CandidateAlert,
    Direction,
    HomepageAlert,
    SyncResult,
)
from pureflow.models.readings import DEFAULT_PARAMETERS, SensorReading
from pureflow.models.thresholds import ThresholdSet

logger = structlog.get_logger(__name__)


# Default configuration values
DEFAULT_GRACE_PERIOD_SECONDS = 60
DEFAULT_HOMEPAGE_LIMIT = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertManager:
    """
    Owns the active alert set and its lifecycle.

    Responsibilities:
    - Short-circuit repeated batches using the signature history
    - Evaluate the latest reading of each batch into candidate alerts
    - Create, update and resolve alerts by signature
    - Enrich new alerts with recommendations
    - Hand new alerts to the sync queue
    - Serve read-only snapshots for display surfaces

    Only process_batch and clear_all mutate state. process_batch does not
    await, so it cannot interleave with a flush on the same event loop.

    Attributes:
        thresholds: Configured threshold bands (never mutated).
        sync_queue: Queue of new alerts awaiting persistence.
        evaluator: ThresholdEvaluator used for candidates.
        recommendation_engine: Engine used to enrich new alerts.
        grace_period_seconds: Absence required before resolution.
        homepage_limit: Default number of homepage alerts.
        _active: Active alerts keyed by signature.
        _history: Recently processed batch signatures.

    Example:
        >>> manager = AlertManager(
        ...     thresholds=ThresholdSet({"pH": ThresholdBand.from_min_max(6.5, 8.5)}),
        ...     sync_queue=SyncQueue(storage),
        ... )
        >>> result = manager.process_batch([{"pH": 9.4}])
        >>> result.new_alerts[0].title
        'pH High'
    """

    def __init__(
        self,
        thresholds: ThresholdSet,
        sync_queue: SyncQueue,
        evaluator: Optional[ThresholdEvaluator] = None,
        recommendation_engine: Optional[RecommendationEngine] = None,
        grace_period_seconds: float = DEFAULT_GRACE_PERIOD_SECONDS,
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
        homepage_limit: int = DEFAULT_HOMEPAGE_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the AlertManager.

        Args:
            thresholds: Threshold bands keyed by parameter.
            sync_queue: Queue that persists new alerts.
            evaluator: Threshold evaluator (default instance if omitted).
            recommendation_engine: Recommendation engine (default if omitted).
            grace_period_seconds: Seconds a condition must stay absent
                before its alert resolves.
            history_capacity: Number of batch signatures remembered.
            homepage_limit: Default size of the homepage alert list.
            clock: Source of the current time when a batch gives none.
        """
        self.thresholds = thresholds
        self.sync_queue = sync_queue
        self.evaluator = evaluator or ThresholdEvaluator()
        self.recommendation_engine = recommendation_engine or RecommendationEngine()
        self.grace_period_seconds = grace_period_seconds
        self.homepage_limit = homepage_limit
        self._clock = clock

        self._active: Dict[str, Alert] = {}
        self._history = SignatureHistory(capacity=history_capacity)
        self._id_counter = 0
        self._last_processed: Optional[datetime] = None

        # Parameters to extract from raw reading mappings
        self._parameters: Tuple[str, ...] = tuple(
            dict.fromkeys([*DEFAULT_PARAMETERS, *thresholds.parameters])
        )

        logger.info(
            "alert_manager_initialized",
            monitored_parameters=thresholds.parameters,
            threshold_profile=thresholds.name,
            grace_period_seconds=grace_period_seconds,
            history_capacity=history_capacity,
        )

    def process_batch(
        self,
        readings: Iterable[Any],
        now: Optional[datetime] = None,
    ) -> BatchResult:
        """
        Process one batch of readings.

        Steps:
        1. Compute the data signature of the most recent reading; if it
           was already processed, return skipped with no changes.
        2. Build candidate alerts from the most recent reading.
        3. Update alerts whose signature recurs; create the rest.
        4. Resolve alerts absent for longer than the grace period.
        5. Commit state, remember the signature and queue new alerts.

        Args:
            readings: SensorReading objects or raw reading mappings.
            now: Processing time (defaults to the manager's clock).

        Returns:
            BatchResult: Active, new, updated and resolved alerts.

        Raises:
            Exception: Any internal failure, after logging. State is left
                exactly as it was before the call.

        Example:
            >>> first = manager.process_batch([{"pH": 9.4}])
            >>> again = manager.process_batch([{"pH": 9.4}])
            >>> again.skipped
            True
        """
        if now is None:
            now = self._clock()

        batch = self._normalize(readings)
        data_signature = build_data_signature(batch)

        if data_signature in self._history:
            logger.debug("batch_skipped", data_signature=data_signature)
            return BatchResult(
                active_alerts=self.get_active_alerts(),
                skipped=True,
                data_signature=data_signature,
            )

        try:
            staged = dict(self._active)
            new_alerts, updated_alerts, resolved_alerts = self._apply_batch(
                batch=batch,
                data_signature=data_signature,
                staged=staged,
                now=now,
            )
        except Exception as e:
            logger.error(
                "batch_processing_failed",
                data_signature=data_signature,
                readings=len(batch),
                error=str(e),
                exc_info=True,
            )
            raise

        # Commit
        self._active = staged
        self._history.record(data_signature)
        self._last_processed = now
        self.sync_queue.enqueue(new_alerts)

        for alert in new_alerts:
            logger.info(
                "alert_created",
                alert_id=alert.alert_id,
                parameter=alert.parameter,
                type=alert.type.value,
                severity=alert.severity.value,
                value=alert.value,
            )
        for alert in resolved_alerts:
            logger.info(
                "alert_resolved",
                alert_id=alert.alert_id,
                parameter=alert.parameter,
                occurrences=alert.occurrence_count,
                active_seconds=(now - alert.created_at).total_seconds(),
            )

        logger.debug(
            "batch_processed",
            data_signature=data_signature,
            new=len(new_alerts),
            updated=len(updated_alerts),
            resolved=len(resolved_alerts),
            active=len(staged),
        )

        return BatchResult(
            active_alerts=self.get_active_alerts(),
            new_alerts=new_alerts,
            updated_alerts=updated_alerts,
            resolved_alerts=resolved_alerts,
            skipped=False,
            data_signature=data_signature,
        )

    async def flush(self) -> SyncResult:
        """
        Persist queued alerts through the sync queue.

        Returns:
            SyncResult: Outcome of the write attempt.
        """
        return await self.sync_queue.flush()

    def get_active_alerts(self) -> List[Alert]:
        """
        Get active alerts ordered for display.

        Returns:
            List[Alert]: High before medium before low severity; within a
                severity, most recently seen first.
        """
        return sorted(
            self._active.values(),
            key=lambda alert: (alert.severity.rank, alert.last_seen),
            reverse=True,
        )

    def get_homepage_alerts(self, limit: Optional[int] = None) -> List[HomepageAlert]:
        """
        Get the top active alerts with a short display string.

        Args:
            limit: Number of alerts (defaults to homepage_limit).

        Returns:
            List[HomepageAlert]: Alerts with messages such as ``PH: 9.40``.
        """
        if limit is None:
            limit = self.homepage_limit
        if limit <= 0:
            return []

        return [
            HomepageAlert(alert=alert, display_message=_display_message(alert))
            for alert in self.get_active_alerts()[:limit]
        ]

    def get_statistics(self) -> AlertStatistics:
        """
        Get counters for the statistics screen.

        Returns:
            AlertStatistics: Active counts by severity plus queue backlog.
        """
        breakdown = {severity.value: 0 for severity in AlertSeverity}
        for alert in self._active.values():
            breakdown[alert.severity.value] += 1

        return AlertStatistics(
            active_alerts=len(self._active),
            history_size=len(self._history),
            pending_sync=len(self.sync_queue),
            dropped_from_queue=self.sync_queue.dropped,
            last_processed=self._last_processed,
            severity_breakdown=breakdown,
        )

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        """
        Look up an active alert by id.

        Args:
            alert_id: The alert identifier.

        Returns:
            Optional[Alert]: The alert, or None if it is not active.
        """
        for alert in self._active.values():
            if alert.alert_id == alert_id:
                return alert
        return None

    def get_active_count(self) -> int:
        """
        Get the number of active alerts.

        Returns:
            int: Number of active alerts.
        """
        return len(self._active)

    def clear_all(self) -> None:
        """
        Clear active alerts, signature history and pending sync queue.

        Used for testing or reset scenarios.
        """
        self._active = {}
        self._history.clear()
        self.sync_queue.clear()
        self._last_processed = None
        logger.info("alert_state_cleared")

    def _normalize(self, readings: Iterable[Any]) -> List[SensorReading]:
        """Convert raw mappings to SensorReading, dropping unusable items."""
        batch: List[SensorReading] = []
        for item in readings:
            if isinstance(item, SensorReading):
                batch.append(item)
            elif isinstance(item, Mapping):
                batch.append(SensorReading.from_raw(item, parameters=self._parameters))
            else:
                logger.warning("reading_ignored", item_type=type(item).__name__)
        return batch

    def _apply_batch(
        self,
        batch: List[SensorReading],
        data_signature: str,
        staged: Dict[str, Alert],
        now: datetime,
    ) -> Tuple[List[Alert], List[Alert], List[Alert]]:
        """
        Diff this batch's candidates against the staged active map.

        Mutates only ``staged``.

        Returns:
            Tuple of new, updated and resolved alerts.
        """
        latest = latest_reading(batch)
        candidates = (
            build_candidates(latest, self.thresholds, self.evaluator)
            if latest is not None
            else []
        )

        new_alerts: List[Alert] = []
        updated_alerts: List[Alert] = []
        resolved_alerts: List[Alert] = []
        present: Set[str] = set()

        for candidate in candidates:
            signature = candidate.signature
            if signature in present:
                continue
            present.add(signature)

            existing = staged.get(signature)
            if existing is not None:
                touched = existing.touch(now)
                staged[signature] = touched
                updated_alerts.append(touched)
            else:
                alert = self._create_alert(candidate, data_signature, now)
                staged[signature] = alert
                new_alerts.append(alert)

        # Resolution sweep: only after the grace period has elapsed
        for signature, alert in list(staged.items()):
            if signature in present:
                continue
            absent_seconds = (now - alert.last_seen).total_seconds()
            if absent_seconds > self.grace_period_seconds:
                del staged[signature]
                resolved_alerts.append(alert.resolve(now))

        return new_alerts, updated_alerts, resolved_alerts

    def _create_alert(
        self,
        candidate: CandidateAlert,
        data_signature: str,
        now: datetime,
    ) -> Alert:
        """
        Create an Alert from a candidate.

        Args:
            candidate: The candidate condition.
            data_signature: Signature of the creating batch.
            now: Creation time.

        Returns:
            Alert: The new alert, with recommendations attached.
        """
        evaluation = candidate.evaluation
        if evaluation is not None:
            severity_text = evaluation.severity.value
            direction = evaluation.direction
            deviation = evaluation.deviation_percent
        else:
            severity_text = "info"
            direction = Direction.NORMAL
            deviation = 0.0

        recommendations = self.recommendation_engine.generate_recommendations(
            parameter=candidate.parameter,
            severity=severity_text,
            direction=direction,
            deviation=deviation,
            value=candidate.value,
        )

        return Alert(
            alert_id=self._next_alert_id(now),
            parameter=candidate.parameter,
            type=candidate.type,
            severity=AlertSeverity.from_alert_type(candidate.type),
            title=candidate.title,
            message=candidate.message,
            value=candidate.value,
            threshold_snapshot=candidate.threshold,
            direction=direction,
            deviation_percent=deviation,
            recommendations=recommendations,
            created_at=now,
            last_seen=now,
            occurrence_count=1,
            data_signature=data_signature,
        )

    def _next_alert_id(self, now: datetime) -> str:
        """Timestamp, process-wide counter and random suffix keep ids unique."""
        self._id_counter += 1
        millis = int(now.timestamp() * 1000)
        return f"alert_{millis}_{self._id_counter}_{uuid4().hex[:9]}"


def _display_message(alert: Alert) -> str:
    if alert.parameter == RAIN_PARAMETER:
        return alert.title
    return f"{alert.parameter.upper()}: {alert.value:.2f}"


def create_alert_manager(
    thresholds: ThresholdSet,
    sink: AlertSink,
    grace_period_seconds: float = DEFAULT_GRACE_PERIOD_SECONDS,
    history_capacity: int = DEFAULT_HISTORY_CAPACITY,
    queue_capacity: Optional[int] = None,
    homepage_limit: int = DEFAULT_HOMEPAGE_LIMIT,
) -> AlertManager:
    """
    Factory function to create an AlertManager with its sync queue.

    Args:
        thresholds: Threshold bands keyed by parameter.
        sink: Durable store for new alerts.
        grace_period_seconds: Absence required before resolution.
        history_capacity: Number of batch signatures remembered.
        queue_capacity: Sync queue capacity (queue default if omitted).
        homepage_limit: Default size of the homepage alert list.

    Returns:
        AlertManager: A new manager instance.

    Example:
        >>> manager = create_alert_manager(thresholds, storage)
    """
    queue = SyncQueue(sink) if queue_capacity is None else SyncQueue(sink, capacity=queue_capacity)
    return AlertManager(
        thresholds=thresholds,
        sync_queue=queue,
        grace_period_seconds=grace_period_seconds,
        history_capacity=history_capacity,
        homepage_limit=homepage_limit,
    )
