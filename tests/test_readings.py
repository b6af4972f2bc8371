"""Tests for tolerant reading parsing."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from pureflow.errors import ReadingValidationError
from pureflow.models.readings import (
    SensorReading,
    parse_numeric,
    parse_rain_flag,
    parse_timestamp,
)

UTC = timezone.utc


@pytest.mark.parametrize(
    "raw, expected",
    [(7, 7.0), (7.25, 7.25), (" 8.1 ", 8.1), ("", None), (None, None), (0, 0.0)],
)
def test_parse_numeric(raw, expected):
    assert parse_numeric("pH", raw) == expected


@pytest.mark.parametrize("raw", ["abc", True, float("nan"), "inf", [7.0]])
def test_parse_numeric_rejects(raw):
    with pytest.raises(ReadingValidationError) as exc_info:
        parse_numeric("pH", raw)
    assert exc_info.value.field == "pH"


def test_parse_timestamp_forms():
    expected = datetime(2025, 3, 1, 8, 0, tzinfo=UTC)

    assert parse_timestamp("2025-03-01T08:00:00Z") == expected
    assert parse_timestamp("2025-03-01T08:00:00") == expected
    assert parse_timestamp(1740816000) == expected
    assert parse_timestamp(1740816000000) == expected
    assert parse_timestamp(datetime(2025, 3, 1, 8, 0)) == expected
    assert parse_timestamp(None) is None


def test_parse_timestamp_keeps_offset():
    parsed = parse_timestamp("2025-03-01T16:00:00+08:00")
    assert parsed.utcoffset() == timedelta(hours=8)


@pytest.mark.parametrize("raw", ["yesterday", {"ts": 1}])
def test_parse_timestamp_rejects(raw):
    with pytest.raises(ReadingValidationError):
        parse_timestamp(raw)


def test_parse_rain_flag():
    assert parse_rain_flag(True) is True
    assert parse_rain_flag(0) is False
    assert parse_rain_flag("Yes") is True
    assert parse_rain_flag("false") is False
    assert parse_rain_flag(None) is None
    with pytest.raises(ReadingValidationError):
        parse_rain_flag("drizzle")


def test_from_raw_normalizes_keys():
    reading = SensorReading.from_raw(
        {"PH": "7.9", "Temperature": 27, "createdAt": 1740816000000, "isRaining": 1}
    )

    assert reading.values == {"pH": 7.9, "temperature": 27.0}
    assert reading.timestamp == datetime(2025, 3, 1, 8, 0, tzinfo=UTC)
    assert reading.is_raining is True


def test_from_raw_never_raises_on_bad_fields():
    reading = SensorReading.from_raw(
        {"ph": "abc", "salinity": 3, "timestamp": "soon", "rain": "drizzle"}
    )

    assert reading.values == {"pH": None, "salinity": 3.0}
    assert reading.timestamp is None
    assert reading.is_raining is None


def test_from_raw_nested_values_and_parameter_list():
    reading = SensorReading.from_raw(
        {"timestamp": "2025-03-01T08:00:00Z", "values": {"tds": "34000", "pH": 7.1}},
        parameters=["tds"],
    )
    assert reading.values == {"tds": 34000.0}


def test_value_and_measured_parameters():
    reading = SensorReading(values={"pH": 7.2, "temperature": None, "salinity": 0.0})

    assert reading.value("temperature") is None
    assert reading.value("turbidity") is None
    assert reading.measured_parameters == ["pH", "salinity"]


def test_direct_construction_normalizes_timestamp():
    naive = SensorReading(timestamp=datetime(2025, 3, 1, 8, 0), values={"pH": 7.0})
    from_text = SensorReading(timestamp="2025-03-01T08:00:00Z")

    assert naive.timestamp == datetime(2025, 3, 1, 8, 0, tzinfo=UTC)
    assert naive.timestamp.tzinfo is not None
    assert from_text.timestamp == naive.timestamp


def test_direct_construction_rejects_bad_timestamp():
    with pytest.raises(ValidationError):
        SensorReading(timestamp="yesterday")
