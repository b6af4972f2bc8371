"""Tests for historical alert processing."""

from datetime import datetime, timedelta, timezone

import pytest

from pureflow.detection.history import (
    HistoricalAlertsService,
    dedupe_by_signature,
    describe_age,
    filter_alerts,
    group_by_recency,
    summarize,
    timestamp_from_alert_id,
)
from pureflow.models.alerts import AlertType
from pureflow.storage.postgres_client import PostgresOperationError

from conftest import make_alert

NOW = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)


class FakeHistoryClient:
    """Stands in for PostgresClient.query_alerts."""

    def __init__(self, alerts):
        self.alerts = list(alerts)
        self.calls = 0
        self.fail = False

    async def query_alerts(self, limit=100, since=None, parameter=None):
        self.calls += 1
        if self.fail:
            raise PostgresOperationError("connection refused")
        return list(self.alerts)[:limit]


@pytest.fixture
def stored_alerts():
    return [
        make_alert("alert_1", created_at=NOW - timedelta(hours=1)),
        make_alert("alert_2", created_at=NOW - timedelta(hours=3)),
        make_alert(
            "alert_3",
            parameter="temperature",
            alert_type=AlertType.WARNING,
            title="Temperature High Warning",
            value=31.0,
            created_at=NOW - timedelta(days=1, hours=2),
        ),
        make_alert(
            "alert_4",
            parameter="rain",
            alert_type=AlertType.INFO,
            title="Rain Detected",
            value=1.0,
            created_at=NOW - timedelta(days=4),
        ),
        make_alert("alert_5", value=9.9, created_at=NOW - timedelta(days=30)),
    ]


def test_filter_alerts(stored_alerts):
    assert len(filter_alerts(stored_alerts)) == 5
    assert len(filter_alerts(stored_alerts, alert_type="all", severity="ALL")) == 5
    assert [a.alert_id for a in filter_alerts(stored_alerts, parameter="TEMPERATURE")] == ["alert_3"]
    assert [a.alert_id for a in filter_alerts(stored_alerts, severity="low")] == ["alert_4"]
    assert len(filter_alerts(stored_alerts, alert_type="error", parameter="ph")) == 3


def test_dedupe_keeps_most_recent(stored_alerts):
    unique = dedupe_by_signature(stored_alerts)

    ids = [a.alert_id for a in unique]
    assert "alert_1" in ids
    assert "alert_2" not in ids
    assert len(unique) == 4


@pytest.mark.parametrize(
    "age, expected",
    [
        (timedelta(seconds=30), "Just now"),
        (timedelta(minutes=5), "5 min ago"),
        (timedelta(hours=3, minutes=20), "3 hr ago"),
        (timedelta(days=1, hours=2), "1 day ago"),
        (timedelta(days=6), "6 days ago"),
        (timedelta(minutes=-5), "Time unknown"),
    ],
)
def test_describe_age(age, expected):
    assert describe_age(NOW - age, NOW) == expected


def test_timestamp_from_alert_id():
    parsed = timestamp_from_alert_id("alert_1740816000000_3_k3j9x0a2b")
    assert parsed == datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)

    assert timestamp_from_alert_id("alert_1000_1_abc") is None
    assert timestamp_from_alert_id("not-an-id") is None
    assert timestamp_from_alert_id("") is None


def test_group_by_recency(stored_alerts):
    sections = group_by_recency(stored_alerts, NOW)

    assert [s.title for s in sections] == ["Today", "Yesterday", "This Week", "Older"]
    today = sections[0]
    assert [item.alert.alert_id for item in today.alerts] == ["alert_1", "alert_2"]
    assert today.alerts[0].age == "1 hr ago"
    assert sections[3].alerts[0].age == "30 days ago"


def test_empty_sections_are_omitted(stored_alerts):
    sections = group_by_recency(stored_alerts[:2], NOW)
    assert [s.title for s in sections] == ["Today"]


def test_naive_reference_time_is_utc(stored_alerts):
    sections = group_by_recency(stored_alerts[:1], NOW.replace(tzinfo=None))
    assert sections[0].title == "Today"


def test_summarize(stored_alerts):
    stats = summarize(stored_alerts, NOW)

    assert stats.total == 5
    assert stats.by_type == {"error": 3, "warning": 1, "info": 1}
    assert stats.by_severity == {"high": 3, "medium": 1, "low": 1}
    assert stats.by_parameter["pH"] == 3
    assert stats.recent == 2


async def test_service_sections_and_cache(stored_alerts):
    client = FakeHistoryClient(stored_alerts)
    service = HistoricalAlertsService(client, cache_ttl_seconds=60, clock=lambda: NOW)

    page = await service.get_sections(parameter="pH")

    assert page.total_count == 5
    assert page.filtered_count == 2
    assert [s.title for s in page.sections] == ["Today", "Older"]
    assert page.last_updated == NOW

    await service.get_sections()
    assert client.calls == 1

    await service.get_sections(use_cache=False)
    assert client.calls == 2


async def test_service_serves_stale_cache_on_error(stored_alerts):
    client = FakeHistoryClient(stored_alerts)
    service = HistoricalAlertsService(client, cache_ttl_seconds=0, clock=lambda: NOW)

    await service.fetch_alerts()
    client.fail = True

    alerts = await service.fetch_alerts()
    assert len(alerts) == 5


async def test_service_raises_without_cache():
    client = FakeHistoryClient([])
    client.fail = True
    service = HistoricalAlertsService(client)

    with pytest.raises(PostgresOperationError):
        await service.get_sections()


async def test_service_statistics_dedupes(stored_alerts):
    service = HistoricalAlertsService(FakeHistoryClient(stored_alerts), clock=lambda: NOW)
    stats = await service.get_statistics()

    assert stats.total == 4
    assert stats.recent == 1

    service.clear_cache()
