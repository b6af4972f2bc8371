"""Tests for threshold evaluation and candidate generation."""

import math

import pytest

from pureflow.detection.evaluator import (
    RAIN_PARAMETER,
    ThresholdEvaluator,
    build_candidates,
    display_name,
)
from pureflow.models.alerts import AlertType, Direction, EvaluationSeverity
from pureflow.models.readings import SensorReading
from pureflow.models.thresholds import ThresholdBand, ThresholdSet


@pytest.fixture
def evaluator() -> ThresholdEvaluator:
    return ThresholdEvaluator()


@pytest.fixture
def canonical_band() -> ThresholdBand:
    return ThresholdBand.from_config(
        {"ideal": [6.5, 8.5], "acceptable": [6.0, 9.0], "critical": [5.5, 9.5]}
    )


def test_legacy_band_excursion_is_critical(evaluator):
    band = ThresholdBand.from_min_max(6.5, 8.5)
    result = evaluator.evaluate("pH", 9.4, band)

    assert result.direction == Direction.HIGH
    assert result.severity == EvaluationSeverity.CRITICAL
    assert result.within_critical_range is False
    assert result.deviation_percent == pytest.approx(0.9 / 8.5 * 100)


def test_value_inside_acceptable_is_normal(evaluator, canonical_band):
    for value in (6.0, 7.2, 9.0):
        result = evaluator.evaluate("pH", value, canonical_band)
        assert result.severity == EvaluationSeverity.NORMAL
        assert result.direction == Direction.NORMAL
        assert not result.is_alerting


def test_warning_between_acceptable_and_critical(evaluator, canonical_band):
    result = evaluator.evaluate("pH", 9.2, canonical_band)

    assert result.direction == Direction.HIGH
    assert result.severity == EvaluationSeverity.WARNING
    assert result.within_critical_range is True


def test_low_side_measures_from_ideal_low(evaluator, canonical_band):
    result = evaluator.evaluate("pH", 5.8, canonical_band)

    assert result.direction == Direction.LOW
    assert result.severity == EvaluationSeverity.WARNING
    assert result.deviation_percent == pytest.approx(0.7 / 6.5 * 100)


def test_outside_critical_escalates(evaluator, canonical_band):
    result = evaluator.evaluate("pH", 10.0, canonical_band)

    assert result.severity == EvaluationSeverity.CRITICAL
    assert result.within_critical_range is False


def test_large_deviation_escalates_inside_critical(evaluator):
    band = ThresholdBand.from_config(
        {"ideal": [10, 20], "acceptable": [8, 22], "critical": [0, 100]}
    )
    result = evaluator.evaluate("turbidity", 30, band)

    assert result.within_critical_range is True
    assert result.deviation_percent == pytest.approx(50.0)
    assert result.severity == EvaluationSeverity.CRITICAL


@pytest.mark.parametrize("value", [None, float("nan"), math.inf, "7.0", True])
def test_unusable_values_are_normal(evaluator, canonical_band, value):
    result = evaluator.evaluate("pH", value, canonical_band)
    assert result.severity == EvaluationSeverity.NORMAL
    assert result.deviation_percent == 0.0


def test_missing_band_is_normal(evaluator):
    assert evaluator.evaluate("nitrate", 500.0, None).severity == EvaluationSeverity.NORMAL


def test_zero_ideal_edge_uses_critical_width(evaluator):
    band = ThresholdBand.from_config(
        {"ideal": [0, 0], "acceptable": [-1, 1], "critical": [-5, 5]}
    )
    result = evaluator.evaluate("offset", 2.0, band)

    assert result.deviation_percent == pytest.approx(20.0)
    assert result.severity == EvaluationSeverity.WARNING


def test_zero_width_band_gives_zero_deviation(evaluator):
    band = ThresholdBand.from_min_max(0, 0)
    result = evaluator.evaluate("salinity", 3.0, band)

    assert result.deviation_percent == 0.0
    assert result.severity == EvaluationSeverity.CRITICAL


def test_evaluate_reading_covers_monitored_parameters(evaluator, legacy_thresholds):
    reading = SensorReading(values={"temperature": 28.0, "pH": 9.4, "salinity": 40.0, "turbidity": None})

    results = evaluator.evaluate_reading(reading, legacy_thresholds)

    assert list(results) == ["pH", "temperature"]
    assert results["pH"].severity == EvaluationSeverity.CRITICAL
    assert results["temperature"].severity == EvaluationSeverity.NORMAL


def test_scenario_a_single_candidate(legacy_thresholds):
    candidates = build_candidates(SensorReading(values={"pH": 9.4}), legacy_thresholds)

    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.parameter == "pH"
    assert candidate.type == AlertType.ERROR
    assert candidate.title == "pH High"
    assert candidate.evaluation.direction == Direction.HIGH
    assert candidate.signature == "pH-error-pH High-9.4"


def test_candidates_skip_unmonitored_and_missing(legacy_thresholds):
    reading = SensorReading(values={"pH": None, "nitrate": 90.0, "temperature": 7.0})
    candidates = build_candidates(reading, legacy_thresholds)

    assert [c.parameter for c in candidates] == ["temperature"]
    assert candidates[0].title == "Temperature Low"


def test_warning_candidate_type(canonical_thresholds):
    candidates = build_candidates(SensorReading(values={"pH": 9.2}), canonical_thresholds)

    assert candidates[0].type == AlertType.WARNING
    assert candidates[0].title == "pH High Warning"


def test_rain_flag_adds_info_candidate(legacy_thresholds):
    candidates = build_candidates(
        SensorReading(values={"pH": 7.0}, is_raining=True), legacy_thresholds
    )

    assert len(candidates) == 1
    assert candidates[0].parameter == RAIN_PARAMETER
    assert candidates[0].type == AlertType.INFO


def test_case_insensitive_band_lookup():
    thresholds = ThresholdSet({"pH": ThresholdBand.from_min_max(6.5, 8.5)})
    candidates = build_candidates(SensorReading(values={"ph": 9.0}), thresholds)

    assert len(candidates) == 1
    assert candidates[0].parameter == "ph"


def test_display_name():
    assert display_name("ph") == "pH"
    assert display_name("tds") == "TDS"
    assert display_name("nitrate") == "Nitrate"
