"""Shared fixtures and fakes for the alert engine tests."""

from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from pureflow.detection.manager import AlertManager
from pureflow.detection.sync_queue import SyncQueue
from pureflow.errors import PersistenceError
from pureflow.interfaces.collaborators import AlertSink, ReadingSource
from pureflow.models.alerts import Alert, AlertSeverity, AlertType
from pureflow.models.readings import SensorReading
from pureflow.models.thresholds import ThresholdBand, ThresholdSet

T0 = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)


class FakeSink(AlertSink):
    """Records every batch it is asked to write."""

    def __init__(self) -> None:
        self.batches: List[List[Alert]] = []

    async def write(self, alerts: List[Alert]) -> None:
        self.batches.append(list(alerts))

    @property
    def written(self) -> List[Alert]:
        return [alert for batch in self.batches for alert in batch]


class FailingSink(AlertSink):
    """Fails the first ``failures`` writes, then behaves like FakeSink."""

    def __init__(self, failures: int = 1) -> None:
        self.failures = failures
        self.attempts = 0
        self.batches: List[List[Alert]] = []

    async def write(self, alerts: List[Alert]) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise PersistenceError("store unavailable", alert_count=len(alerts))
        self.batches.append(list(alerts))


class FakeSource(ReadingSource):
    """Serves queued batches of readings; raises queued exceptions."""

    def __init__(self, batches=None) -> None:
        self.batches = list(batches or [])
        self.calls = 0

    async def fetch_recent(self, limit: int) -> List[SensorReading]:
        self.calls += 1
        item = self.batches.pop(0) if self.batches else []
        if isinstance(item, Exception):
            raise item
        return list(item)[-limit:]


def reading(offset_seconds: float = 0, raining=None, **values) -> SensorReading:
    """Build a reading taken ``offset_seconds`` after T0."""
    return SensorReading(
        timestamp=T0 + timedelta(seconds=offset_seconds),
        values=values,
        is_raining=raining,
    )


def make_alert(
    alert_id: str = "alert_1740816000000_1_abcdef012",
    parameter: str = "pH",
    alert_type: AlertType = AlertType.ERROR,
    title: str = "pH High",
    value: float = 9.4,
    created_at: datetime = T0,
    last_seen: datetime = None,
) -> Alert:
    return Alert(
        alert_id=alert_id,
        parameter=parameter,
        type=alert_type,
        severity=AlertSeverity.from_alert_type(alert_type),
        title=title,
        message=f"{title} message",
        value=value,
        created_at=created_at,
        last_seen=last_seen or created_at,
        data_signature="ts=none|rain=null",
    )


@pytest.fixture
def legacy_thresholds() -> ThresholdSet:
    return ThresholdSet(
        {
            "pH": ThresholdBand.from_min_max(6.5, 8.5),
            "temperature": ThresholdBand.from_min_max(26, 30),
            "turbidity": ThresholdBand.from_min_max(0, 50),
        },
        name="freshwater",
    )


@pytest.fixture
def canonical_thresholds() -> ThresholdSet:
    return ThresholdSet.from_config(
        {
            "pH": {"ideal": [6.5, 8.5], "acceptable": [6.0, 9.0], "critical": [5.5, 9.5]},
            "temperature": {"ideal": [25, 30], "acceptable": [22, 32], "critical": [18, 35]},
        },
        name="aquaculture",
    )


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def manager(legacy_thresholds, sink) -> AlertManager:
    return AlertManager(
        thresholds=legacy_thresholds,
        sync_queue=SyncQueue(sink),
        clock=lambda: T0,
    )
