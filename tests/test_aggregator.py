"""Tests for time-window aggregation."""

from datetime import datetime, timedelta, timezone

import pytest

from pureflow.analytics.aggregator import aggregate_by_interval, bucket_start, summarize_parameters
from pureflow.models.analysis import IntervalType
from pureflow.models.readings import SensorReading

UTC = timezone.utc


def _reading(ts, **values):
    return SensorReading(timestamp=ts, values=values)


@pytest.mark.parametrize(
    "interval, expected",
    [
        ("2hour", datetime(2025, 3, 5, 14, 0, tzinfo=UTC)),
        ("daily", datetime(2025, 3, 5, 0, 0, tzinfo=UTC)),
        ("weekly", datetime(2025, 3, 3, 0, 0, tzinfo=UTC)),
        ("monthly", datetime(2025, 3, 1, 0, 0, tzinfo=UTC)),
    ],
)
def test_bucket_start(interval, expected):
    assert bucket_start(datetime(2025, 3, 5, 15, 40, 12, tzinfo=UTC), interval) == expected


def test_bucket_start_keeps_own_timezone():
    tz = timezone(timedelta(hours=8))
    start = bucket_start(datetime(2025, 3, 5, 1, 30, tzinfo=tz), IntervalType.DAILY)

    assert start == datetime(2025, 3, 5, 0, 0, tzinfo=tz)
    assert start.utcoffset() == timedelta(hours=8)


def test_aggregates_per_bucket():
    readings = [
        _reading(datetime(2025, 3, 5, 9, 0, tzinfo=UTC), pH=7.0, temperature=28.0),
        _reading(datetime(2025, 3, 4, 10, 0, tzinfo=UTC), pH=8.0),
        _reading(datetime(2025, 3, 5, 18, 0, tzinfo=UTC), pH=7.5, temperature=None),
    ]

    buckets = aggregate_by_interval(readings, "daily")

    assert [b.start.day for b in buckets] == [4, 5]
    first, second = buckets
    assert first.count == 1
    assert first.parameters["temperature"] is None

    ph = second.parameters["pH"]
    assert (ph.sum, ph.count, ph.min, ph.max) == (14.5, 2, 7.0, 7.5)
    assert ph.average == pytest.approx(7.25)
    assert second.parameters["temperature"].count == 1
    assert second.parameters["salinity"] is None


def test_measured_zero_is_not_missing():
    buckets = aggregate_by_interval(
        [_reading(datetime(2025, 3, 5, 9, tzinfo=UTC), turbidity=0.0)], "2hour"
    )
    turbidity = buckets[0].parameters["turbidity"]

    assert turbidity is not None
    assert turbidity.average == 0.0


def test_count_totals_match_timestamped_readings():
    base = datetime(2025, 1, 30, 0, 0, tzinfo=UTC)
    readings = [_reading(base + timedelta(hours=7 * i), pH=7.0) for i in range(20)]
    readings.append(SensorReading(values={"pH": 7.0}))

    for interval in IntervalType:
        buckets = aggregate_by_interval(readings, interval)
        assert sum(b.count for b in buckets) == 20
        starts = [b.start for b in buckets]
        assert starts == sorted(starts)


def test_monthly_and_weekly_boundaries():
    readings = [
        _reading(datetime(2025, 3, 31, 23, 59, tzinfo=UTC), pH=7.0),
        _reading(datetime(2025, 4, 1, 0, 0, tzinfo=UTC), pH=7.0),
    ]

    monthly = aggregate_by_interval(readings, "monthly")
    assert [b.start.month for b in monthly] == [3, 4]

    # Monday 31 March and Tuesday 1 April share an ISO week
    weekly = aggregate_by_interval(readings, "weekly")
    assert len(weekly) == 1
    assert weekly[0].start == datetime(2025, 3, 31, 0, 0, tzinfo=UTC)


def test_unknown_interval():
    with pytest.raises(ValueError):
        aggregate_by_interval([], "hourly")


def test_summarize_parameters():
    readings = [
        _reading(None, pH=7.0, temperature=28.0),
        _reading(None, pH=7.5),
    ]

    summary = summarize_parameters(readings)

    assert summary["pH"] == 7.25
    assert summary["temperature"] == 28.0
    assert summary["salinity"] is None


def test_naive_and_aware_readings_share_a_timeline():
    readings = [
        SensorReading(timestamp=datetime(2025, 3, 1, 8, 0), values={"pH": 7.0}),
        _reading(datetime(2025, 3, 2, 8, 0, tzinfo=UTC), pH=8.0),
    ]

    buckets = aggregate_by_interval(readings, "daily")

    assert [b.start for b in buckets] == [
        datetime(2025, 3, 1, tzinfo=UTC),
        datetime(2025, 3, 2, tzinfo=UTC),
    ]
    assert sum(b.count for b in buckets) == 2
