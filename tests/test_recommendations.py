"""Tests for the recommendation engine."""

import pytest

from pureflow.detection.recommendations import RecommendationEngine
from pureflow.models.alerts import AlertSeverity, Direction, EvaluationSeverity, ThresholdEvaluation
from pureflow.models.analysis import TrendDirection


@pytest.fixture
def engine() -> RecommendationEngine:
    return RecommendationEngine()


def test_ph_critical_high_buckets(engine):
    severe = engine.generate_recommendations("pH", "critical", "high", 25.0, 10.7)
    moderate = engine.generate_recommendations("pH", "critical", "high", 15.0, 9.8)
    mild = engine.generate_recommendations("pH", "critical", "high", 5.0, 8.9)

    assert severe[0].startswith("URGENT")
    assert moderate[0] == "Add pH reducer (sodium bisulfate) gradually over 1-2 hours"
    assert mild[0] == "Add pH reducer (sodium bisulfate) slowly"


def test_ph_warning_low(engine):
    result = engine.generate_recommendations("ph", EvaluationSeverity.WARNING, Direction.LOW, 4.0, 6.2)
    assert result[0] == "Add pH increaser (baking soda) gradually"


def test_enum_and_string_inputs_agree(engine):
    from_enums = engine.generate_recommendations(
        "temperature", EvaluationSeverity.CRITICAL, Direction.HIGH, 12.0, 33.0
    )
    from_text = engine.generate_recommendations("Temperature", "critical", "high", 12.0, 33.0)

    assert from_enums == from_text
    assert from_enums[0] == "Activate cooling system immediately (chillers/fans)"


def test_deterministic(engine):
    first = engine.generate_recommendations("salinity", "warning", "low", 11.0, 12.0)
    second = RecommendationEngine().generate_recommendations("salinity", "warning", "low", 11.0, 12.0)
    assert first == second


def test_unknown_parameter_falls_back_to_generic(engine):
    result = engine.generate_recommendations("nitrate", "warning", "high", 12.0, 55.0)

    assert result[0] == "Warning Nitrate levels detected"
    assert "Monitor nitrate levels closely" in result


def test_rain_recommendations(engine):
    result = engine.generate_recommendations("rain", "info", "normal")
    assert result[0].startswith("Cover open tanks")


def test_multi_parameter_recommendations(engine):
    critical = ThresholdEvaluation(
        direction=Direction.HIGH,
        severity=EvaluationSeverity.CRITICAL,
        deviation_percent=12.0,
        within_critical_range=False,
    )
    warning = ThresholdEvaluation(
        direction=Direction.LOW,
        severity=EvaluationSeverity.WARNING,
        deviation_percent=4.0,
    )

    assert engine.generate_multi_parameter_recommendations(["pH"], [critical]) == []

    result = engine.generate_multi_parameter_recommendations(["pH", "salinity"], [critical, warning])
    assert result[0].startswith("MULTIPLE CRITICAL PARAMETERS")
    assert result[1] == "Affected parameters: pH, salinity"


def test_assess_priority(engine):
    assert engine.assess_priority("critical", 5.0).urgency == "immediate"
    assert engine.assess_priority("warning", 5.0).priority == AlertSeverity.HIGH

    routine = engine.assess_priority("normal", 10.0)
    assert routine.priority == AlertSeverity.LOW
    assert routine.urgency == "routine"

    rising = engine.assess_priority("normal", 25.0, trend="increasing")
    assert rising.urgency == "immediate"


def test_templates_cover_supported_parameters(engine):
    assert engine.validate_templates() is True
    assert "ph" in engine.supported_parameters()


def test_trend_recommendations_stable(engine):
    assert engine.generate_trend_recommendations("pH", "increasing", 3.0) == [
        "Parameter trending stable - maintain current conditions"
    ]


def test_trend_recommendations_increasing(engine):
    result = engine.generate_trend_recommendations("temperature", TrendDirection.INCREASING, 12.4)
    assert result == [
        "Temperature trending upward (12% increase)",
        "Check cooling system efficiency",
    ]


def test_trend_recommendations_decreasing(engine):
    assert engine.generate_trend_recommendations("salinity", "decreasing", -8.0) == [
        "Salinity trending downward (8% decrease)"
    ]
    assert engine.generate_trend_recommendations("temperature", "decreasing", -20.0)[1] == (
        "Verify heating system functionality"
    )
