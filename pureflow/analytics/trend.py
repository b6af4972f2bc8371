"""
Trend, anomaly and descriptive statistics over parameter series.

A series is a sequence of optional numbers, typically one parameter's
values across consecutive readings. Missing values (None, NaN, infinite,
non-numeric) are dropped before any computation.

Functions:
    calculate_trend: Least-squares trend with Pearson correlation
    detect_anomalies: Indices of anomalous points (z-score, IQR, moving average)
    calculate_statistics: Count, extremes, mean, median, quartiles, spread

Example:
    >>> calculate_trend([7.0, 7.2, 7.4, 7.6]).trend.value
    'increasing'
    >>> detect_anomalies([1, 1, 1, 1, 100], "zscore", 2)
    [4]
"""

import math
from typing import Any, List, Optional, Sequence, Tuple, Union

import structlog

from pureflow.models.analysis import (
    AnomalyMethod,
    SeriesStatistics,
    TrendDirection,
    TrendResult,
)

logger = structlog.get_logger(__name__)


# Slope magnitude below which a series is stable
TREND_SLOPE_THRESHOLD = 0.01

MIN_POINTS_FOR_ANOMALIES = 3
MIN_POINTS_FOR_MOVING_AVERAGE = 5
MAX_MOVING_AVERAGE_WINDOW = 5


def _valid_points(values: Sequence[Any]) -> List[Tuple[int, float]]:
    """Pair each usable value with its index in the input series."""
    points: List[Tuple[int, float]] = []
    for index, value in enumerate(values):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if not math.isfinite(value):
            continue
        points.append((index, float(value)))
    return points


def calculate_trend(values: Sequence[Optional[float]]) -> TrendResult:
    """
    Fit an ordinary least-squares line over (position, value).

    Positions are re-numbered 0..n-1 over the valid values, so gaps in the
    input do not stretch the x axis.

    Args:
        values: The series.

    Returns:
        TrendResult: increasing or decreasing when the slope magnitude
            exceeds 0.01, otherwise stable; insufficient_data with slope 0
            for fewer than two valid values.

    Example:
        >>> result = calculate_trend([30.0, 29.0, None, 28.0])
        >>> result.trend.value, result.slope
        ('decreasing', -1.0)
    """
    ys = [value for _, value in _valid_points(values)]
    n = len(ys)
    if n < 2:
        return TrendResult(trend=TrendDirection.INSUFFICIENT_DATA, slope=0.0, points=n)

    xs = range(n)
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)
    sum_yy = sum(y * y for y in ys)

    # n >= 2 with distinct positions, so the denominator is positive
    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    spread = (n * sum_xx - sum_x * sum_x) * (n * sum_yy - sum_y * sum_y)
    if spread <= 0:
        correlation = 0.0
    else:
        correlation = (n * sum_xy - sum_x * sum_y) / math.sqrt(spread)

    if abs(slope) > TREND_SLOPE_THRESHOLD:
        trend = TrendDirection.INCREASING if slope > 0 else TrendDirection.DECREASING
    else:
        trend = TrendDirection.STABLE

    return TrendResult(
        trend=trend,
        slope=round(slope, 4),
        intercept=round(intercept, 4),
        correlation=round(correlation, 4),
        points=n,
    )


def detect_anomalies(
    values: Sequence[Optional[float]],
    method: Union[AnomalyMethod, str] = AnomalyMethod.ZSCORE,
    threshold: float = 3.0,
) -> List[int]:
    """
    Find anomalous points in a series.

    Methods:
        zscore: population standard deviation; a point is anomalous when
            its absolute z-score reaches the threshold.
        iqr: quartiles by index; anomalous outside
            [q1 - threshold * IQR, q3 + threshold * IQR].
        moving_average: trailing window of min(5, n // 3) points; anomalous
            when the percent deviation from the window average exceeds the
            threshold.

    Args:
        values: The series; missing values are ignored.
        method: Detection method.
        threshold: Method-specific threshold.

    Returns:
        List[int]: Indices into ``values`` of anomalous points, ascending.
            An unknown method name yields an empty list.

    Example:
        >>> detect_anomalies([10, 10, None, 10, 10, 50], "iqr", 1.5)
        [5]
    """
    try:
        method = AnomalyMethod(method)
    except ValueError:
        logger.warning(
            "anomaly_method_unknown",
            method=str(method),
            expected=[m.value for m in AnomalyMethod],
        )
        return []

    points = _valid_points(values)
    if len(points) < MIN_POINTS_FOR_ANOMALIES:
        return []

    if method == AnomalyMethod.ZSCORE:
        return _zscore_anomalies(points, threshold)
    if method == AnomalyMethod.IQR:
        return _iqr_anomalies(points, threshold)
    return _moving_average_anomalies(points, threshold)


def _zscore_anomalies(points: List[Tuple[int, float]], threshold: float) -> List[int]:
    n = len(points)
    mean = sum(value for _, value in points) / n
    std = math.sqrt(sum((value - mean) ** 2 for _, value in points) / n)
    if std == 0:
        return []

    anomalies = []
    for index, value in points:
        zscore = abs(value - mean) / std
        # A score equal to the threshold counts, allowing for float rounding
        if zscore > threshold or math.isclose(zscore, threshold):
            anomalies.append(index)
    return anomalies


def _iqr_anomalies(points: List[Tuple[int, float]], threshold: float) -> List[int]:
    ordered = sorted(value for _, value in points)
    n = len(ordered)
    q1 = ordered[n // 4]
    q3 = ordered[(3 * n) // 4]
    iqr = q3 - q1
    lower = q1 - threshold * iqr
    upper = q3 + threshold * iqr
    return [index for index, value in points if value < lower or value > upper]


def _moving_average_anomalies(points: List[Tuple[int, float]], threshold: float) -> List[int]:
    n = len(points)
    if n < MIN_POINTS_FOR_MOVING_AVERAGE:
        return []

    window = min(MAX_MOVING_AVERAGE_WINDOW, n // 3)
    anomalies = []
    for position in range(window, n):
        average = sum(value for _, value in points[position - window:position]) / window
        if average == 0:
            continue
        index, value = points[position]
        deviation = abs((value - average) / average) * 100
        if deviation > threshold:
            anomalies.append(index)
    return anomalies


def calculate_statistics(values: Sequence[Optional[float]]) -> Optional[SeriesStatistics]:
    """
    Describe the valid values of a series.

    Quartiles and median are taken by index into the sorted values
    (floor of 25%, 50% and 75% of the count). Variance is the population
    variance. Mean, standard deviation and variance are rounded to 3 places.

    Args:
        values: The series.

    Returns:
        Optional[SeriesStatistics]: Statistics, or None with no valid values.

    Example:
        >>> calculate_statistics([7.0, 8.0, None, 9.0]).median
        8.0
    """
    ordered = sorted(value for _, value in _valid_points(values))
    n = len(ordered)
    if n == 0:
        return None

    mean = sum(ordered) / n
    variance = sum((value - mean) ** 2 for value in ordered) / n

    return SeriesStatistics(
        count=n,
        min=ordered[0],
        max=ordered[-1],
        mean=round(mean, 3),
        median=ordered[n // 2],
        q1=ordered[n // 4],
        q3=ordered[(3 * n) // 4],
        std=round(math.sqrt(variance), 3),
        variance=round(variance, 3),
    )
