"""
Water quality index over a single reading.

Each scored parameter maps to a 0-100 score through a step table; the
index is the weighted average of the scores of the parameters that carry
a usable value, so a partial reading is still rated.

Functions:
    parameter_score: Score one parameter value
    rate_quality: Rating band for an overall score
    calculate_wqi: Weighted index for a reading or raw mapping

Example:
    >>> wqi = calculate_wqi({"pH": 7.2, "temperature": 27.5})
    >>> wqi.overall, wqi.level.value
    (100, 'excellent')
"""

import math
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import structlog

from pureflow.models.analysis import QualityLevel, WaterQualityIndex
from pureflow.models.readings import DEFAULT_PARAMETERS, SensorReading

logger = structlog.get_logger(__name__)


WQI_WEIGHTS: Dict[str, float] = {
    "pH": 0.25,
    "temperature": 0.20,
    "turbidity": 0.25,
    "salinity": 0.30,
}

# Score for a parameter without a scoring table
UNKNOWN_PARAMETER_SCORE = 50

# (low, high, score), first matching inclusive range wins
_RANGE_SCORES: Dict[str, Tuple[Tuple[float, float, int], ...]] = {
    "ph": (
        (6.5, 8.5, 100),
        (6.0, 9.0, 75),
        (5.5, 9.5, 50),
        (5.0, 10.0, 25),
    ),
    "temperature": (
        (26.0, 30.0, 100),
        (24.0, 32.0, 80),
        (22.0, 34.0, 60),
        (20.0, 35.0, 40),
    ),
}
_RANGE_FLOORS = {"ph": 0, "temperature": 20}

# (ceiling, score), first ceiling at or above the value wins
_CEILING_SCORES: Dict[str, Tuple[Tuple[float, int], ...]] = {
    "turbidity": ((10.0, 100), (25.0, 80), (50.0, 60), (100.0, 40)),
    "salinity": ((1.0, 100), (3.0, 80), (5.0, 60), (10.0, 40)),
}
_CEILING_FLOOR = 20

# Minimum overall score per level, best first
_LEVEL_MINIMUMS = (
    (90, QualityLevel.EXCELLENT),
    (70, QualityLevel.GOOD),
    (50, QualityLevel.FAIR),
    (25, QualityLevel.POOR),
)

LEVEL_DESCRIPTIONS = {
    QualityLevel.EXCELLENT: "Water quality is excellent with minimal risk",
    QualityLevel.GOOD: "Water quality is good with low risk",
    QualityLevel.FAIR: "Water quality is fair with moderate risk",
    QualityLevel.POOR: "Water quality is poor with high risk",
    QualityLevel.VERY_POOR: "Water quality is very poor with very high risk",
}


def parameter_score(parameter: str, value: float) -> int:
    """
    Score one parameter value from 0 to 100.

    Args:
        parameter: Parameter name, matched case-insensitively.
        value: Measured value.

    Returns:
        int: The score; 50 for a parameter without a scoring table.

    Example:
        >>> parameter_score("pH", 9.2)
        50
        >>> parameter_score("turbidity", 30)
        60
    """
    key = parameter.lower()

    if key in _RANGE_SCORES:
        for low, high, score in _RANGE_SCORES[key]:
            if low <= value <= high:
                return score
        return _RANGE_FLOORS[key]

    if key in _CEILING_SCORES:
        for ceiling, score in _CEILING_SCORES[key]:
            if value <= ceiling:
                return score
        return _CEILING_FLOOR

    return UNKNOWN_PARAMETER_SCORE


def rate_quality(overall: int) -> QualityLevel:
    """Rating band for an overall index score."""
    for minimum, level in _LEVEL_MINIMUMS:
        if overall >= minimum:
            return level
    return QualityLevel.VERY_POOR


def calculate_wqi(
    data: Union[SensorReading, Mapping[str, Any]],
) -> Optional[WaterQualityIndex]:
    """
    Compute the weighted water quality index.

    A raw mapping is normalized the way device payloads are: keys are
    matched case-insensitively and values that do not parse as numbers are
    skipped. Weights are renormalized over the parameters that were scored.

    Args:
        data: A reading, or a raw mapping of parameter values.

    Returns:
        Optional[WaterQualityIndex]: The index, or None when no weighted
            parameter has a usable value.
    """
    if isinstance(data, SensorReading):
        reading = data
    elif isinstance(data, Mapping):
        reading = SensorReading.from_raw(data, parameters=DEFAULT_PARAMETERS)
    else:
        return None

    scores: Dict[str, int] = {}
    weighted_sum = 0.0
    total_weight = 0.0
    for parameter, weight in WQI_WEIGHTS.items():
        value = reading.value(parameter)
        if value is None:
            continue
        score = parameter_score(parameter, value)
        scores[parameter] = score
        weighted_sum += score * weight
        total_weight += weight

    if total_weight == 0:
        logger.debug("wqi_no_scored_parameters")
        return None

    overall = math.floor(weighted_sum / total_weight + 0.5)
    level = rate_quality(overall)

    return WaterQualityIndex(
        overall=overall,
        level=level,
        description=LEVEL_DESCRIPTIONS[level],
        parameters=scores,
        weights={parameter: WQI_WEIGHTS[parameter] for parameter in scores},
    )
