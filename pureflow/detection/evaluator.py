"""
Threshold evaluator and candidate alert generation.

This module provides the ThresholdEvaluator, which classifies a single
parameter value against its ThresholdBand, and build_candidates, which
turns one sensor reading into the alert conditions it exhibits.

Key Features:
    - Pure and total: evaluation never raises, whatever the input
    - Direction, severity and deviation from the ideal edge
    - Escalation to critical outside the critical band or past 30% deviation
    - Rain flag handled as an informational candidate

Example:
    >>> evaluator = ThresholdEvaluator()
    >>> band = ThresholdBand.from_min_max(6.5, 8.5)
    >>> result = evaluator.evaluate("pH", 9.4, band)
    >>> result.direction.value, result.severity.value
    ('high', 'critical')
"""

import math
from typing import Any, Dict, List, Optional

import structlog

from pureflow.errors import ConfigurationError
from pureflow.models.alerts import (
    AlertType,
    CandidateAlert,
    Direction,
    EvaluationSeverity,
    ThresholdEvaluation,
)
from pureflow.models.readings import SensorReading
from pureflow.models.thresholds import ThresholdBand, ThresholdSet

logger = structlog.get_logger(__name__)


# Deviation (percent) above which a warning escalates to critical
CRITICAL_DEVIATION_PERCENT = 30.0

RAIN_PARAMETER = "rain"
RAIN_TITLE = "Rain Detected"
RAIN_MESSAGE = "It is currently raining. Please take necessary precautions."

DISPLAY_NAMES = {
    "ph": "pH",
    "temperature": "Temperature",
    "turbidity": "Turbidity",
    "salinity": "Salinity",
    "tds": "TDS",
}

_NORMAL = ThresholdEvaluation()


def display_name(parameter: str) -> str:
    """
    Get the human-readable name for a parameter.

    Example:
        >>> display_name("ph")
        'pH'
        >>> display_name("dissolved_oxygen")
        'Dissolved_oxygen'
    """
    known = DISPLAY_NAMES.get(parameter.lower())
    if known is not None:
        return known
    return parameter[:1].upper() + parameter[1:]


class ThresholdEvaluator:
    """
    Classifies parameter values against threshold bands.

    Classification:
    1. Missing, non-numeric or non-finite value, or no band: normal
    2. Inside the acceptable band (inclusive): normal
    3. Outside acceptable: direction from the crossed edge, deviation
       measured from the matching ideal edge
    4. Outside critical: severity critical, within_critical_range False
    5. Otherwise warning, escalated to critical above 30% deviation

    Attributes:
        critical_deviation_percent: Deviation that escalates a warning.

    Example:
        >>> evaluator = ThresholdEvaluator()
        >>> band = ThresholdBand.from_config(
        ...     {"ideal": [6.5, 8.5], "acceptable": [6.0, 9.0], "critical": [5.5, 9.5]}
        ... )
        >>> evaluator.evaluate("pH", 9.2, band).severity.value
        'warning'
    """

    def __init__(self, critical_deviation_percent: float = CRITICAL_DEVIATION_PERCENT) -> None:
        self.critical_deviation_percent = critical_deviation_percent

    def evaluate(
        self,
        parameter: str,
        value: Any,
        band: Optional[ThresholdBand],
    ) -> ThresholdEvaluation:
        """
        Evaluate one value against its band.

        Args:
            parameter: Parameter name, used for logging.
            value: The measured value; anything non-numeric is treated as missing.
            band: The parameter's band, or None when unconfigured.

        Returns:
            ThresholdEvaluation: Direction, severity, deviation and range flag.
        """
        if band is None or not _is_number(value):
            return _NORMAL

        value = float(value)
        if band.acceptable.contains(value):
            return _NORMAL

        if value > band.acceptable.high:
            direction = Direction.HIGH
            ideal_edge = band.ideal.high
        else:
            direction = Direction.LOW
            ideal_edge = band.ideal.low

        deviation = _deviation_percent(value, ideal_edge, band.critical.width)
        within_critical = band.critical.contains(value)

        if not within_critical or deviation > self.critical_deviation_percent:
            severity = EvaluationSeverity.CRITICAL
        else:
            severity = EvaluationSeverity.WARNING

        logger.debug(
            "threshold_exceeded",
            parameter=parameter,
            value=value,
            direction=direction.value,
            severity=severity.value,
            deviation_percent=round(deviation, 2),
            within_critical_range=within_critical,
        )

        return ThresholdEvaluation(
            direction=direction,
            severity=severity,
            deviation_percent=deviation,
            within_critical_range=within_critical,
        )

    def evaluate_reading(
        self,
        reading: SensorReading,
        thresholds: ThresholdSet,
    ) -> Dict[str, ThresholdEvaluation]:
        """
        Evaluate every monitored parameter present in a reading.

        Args:
            reading: The sensor reading.
            thresholds: Configured bands.

        Returns:
            Dict[str, ThresholdEvaluation]: Evaluation per parameter that has
                both a usable value and a band, in parameter name order.
        """
        results: Dict[str, ThresholdEvaluation] = {}
        for parameter in reading.measured_parameters:
            try:
                band = thresholds.band_for(parameter)
            except ConfigurationError as e:
                logger.debug("parameter_unmonitored", parameter=e.parameter)
                continue
            results[parameter] = self.evaluate(parameter, reading.value(parameter), band)
        return results


def build_candidates(
    reading: SensorReading,
    thresholds: ThresholdSet,
    evaluator: Optional[ThresholdEvaluator] = None,
) -> List[CandidateAlert]:
    """
    Turn one reading into the alert conditions it exhibits.

    Parameters are visited in name order so the output is deterministic.
    A parameter without a band is unmonitored; a parameter without a usable
    value is skipped. Normal evaluations produce no candidate. A true rain
    flag adds an informational candidate.

    Args:
        reading: The most recent reading of a batch.
        thresholds: Configured bands.
        evaluator: Evaluator to use (a default one if omitted).

    Returns:
        List[CandidateAlert]: Candidates in deterministic order.

    Example:
        >>> thresholds = ThresholdSet({"pH": ThresholdBand.from_min_max(6.5, 8.5)})
        >>> reading = SensorReading(values={"pH": 9.4})
        >>> [c.title for c in build_candidates(reading, thresholds)]
        ['pH High']
    """
    evaluator = evaluator or ThresholdEvaluator()
    candidates: List[CandidateAlert] = []

    for parameter, evaluation in evaluator.evaluate_reading(reading, thresholds).items():
        if not evaluation.is_alerting:
            continue

        band = thresholds.band_for(parameter)
        value = reading.value(parameter)

        title, message = _describe(parameter, evaluation)
        alert_type = (
            AlertType.ERROR
            if evaluation.severity == EvaluationSeverity.CRITICAL
            else AlertType.WARNING
        )
        candidates.append(
            CandidateAlert(
                parameter=parameter,
                type=alert_type,
                title=title,
                message=message,
                value=value,
                threshold=band,
                evaluation=evaluation,
            )
        )

    if reading.is_raining:
        candidates.append(
            CandidateAlert(
                parameter=RAIN_PARAMETER,
                type=AlertType.INFO,
                title=RAIN_TITLE,
                message=RAIN_MESSAGE,
                value=1.0,
            )
        )

    return candidates


def create_evaluator(critical_deviation_percent: float = CRITICAL_DEVIATION_PERCENT) -> ThresholdEvaluator:
    """
    Factory function to create a ThresholdEvaluator.

    Returns:
        ThresholdEvaluator: A new evaluator instance.
    """
    return ThresholdEvaluator(critical_deviation_percent=critical_deviation_percent)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _deviation_percent(value: float, ideal_edge: float, critical_width: float) -> float:
    """Percent distance from the ideal edge; relative to the band width at a zero edge."""
    distance = abs(value - ideal_edge)
    if ideal_edge != 0:
        return distance / abs(ideal_edge) * 100
    if critical_width > 0:
        return distance / critical_width * 100
    return 0.0


def _describe(parameter: str, evaluation: ThresholdEvaluation) -> tuple[str, str]:
    name = display_name(parameter)
    high = evaluation.direction == Direction.HIGH

    if evaluation.severity == EvaluationSeverity.CRITICAL:
        if high:
            return f"{name} High", f"{name} is above maximum safe level!"
        return f"{name} Low", f"{name} is too low!"

    if high:
        return f"{name} High Warning", f"{name} is approaching maximum threshold."
    return f"{name} Low Warning", f"{name} is approaching minimum threshold."
