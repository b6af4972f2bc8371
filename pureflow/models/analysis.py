"""
Result models for trend analysis, anomaly detection and aggregation.

Models:
    TrendDirection: increasing, decreasing, stable or insufficient_data
    TrendResult: Least-squares trend over a series
    AnomalyMethod: zscore, iqr or moving_average
    SeriesStatistics: Descriptive statistics for a series
    IntervalType: Aggregation window (2hour, daily, weekly, monthly)
    ParameterAggregate: Sum/count/min/max/average for one parameter
    AggregationBucket: One time window of aggregated readings
    QualityLevel: Water quality rating band
    WaterQualityIndex: Weighted quality score over a reading
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class TrendDirection(str, Enum):
    """Direction of a fitted trend."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class TrendResult(BaseModel):
    """
    Ordinary least-squares trend over index/value pairs.

    Attributes:
        trend: Direction classification.
        slope: Fitted slope per sample, rounded to 4 places.
        intercept: Fitted intercept (None without enough data).
        correlation: Pearson correlation (None without enough data).
        points: Number of valid points used.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    trend: TrendDirection
    slope: float = 0.0
    intercept: Optional[float] = None
    correlation: Optional[float] = None
    points: int = Field(default=0, ge=0)


class AnomalyMethod(str, Enum):
    """Anomaly detection strategy."""

    ZSCORE = "zscore"
    IQR = "iqr"
    MOVING_AVERAGE = "moving_average"


class SeriesStatistics(BaseModel):
    """Descriptive statistics over the valid values of a series."""

    model_config = {"frozen": True, "extra": "forbid"}

    count: int
    min: float
    max: float
    mean: float
    median: float
    q1: float
    q3: float
    std: float
    variance: float


class IntervalType(str, Enum):
    """Aggregation window."""

    TWO_HOUR = "2hour"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ParameterAggregate(BaseModel):
    """Aggregate of the valid samples of one parameter within a bucket."""

    model_config = {"frozen": True, "extra": "forbid"}

    sum: float
    count: int = Field(..., ge=1)
    min: float
    max: float
    average: float


class AggregationBucket(BaseModel):
    """
    One time window of aggregated readings.

    Attributes:
        start: Start of the window, in the readings' own timezone.
        count: Number of readings that fell into the window.
        parameters: Per-parameter aggregate; None when the window has no
            valid sample for the parameter.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    start: datetime
    count: int = Field(..., ge=0)
    parameters: Dict[str, Optional[ParameterAggregate]] = Field(default_factory=dict)


class QualityLevel(str, Enum):
    """Water quality rating band, from the overall index score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    VERY_POOR = "very_poor"


class WaterQualityIndex(BaseModel):
    """
    Weighted water quality index over the scored parameters of a reading.

    Attributes:
        overall: Index from 0 to 100, rounded half up.
        level: Rating band for the overall score.
        description: Human-readable rating.
        parameters: Score (0-100) per parameter that had a usable value.
        weights: Weight per scored parameter.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    overall: int = Field(..., ge=0, le=100)
    level: QualityLevel
    description: str
    parameters: Dict[str, int] = Field(default_factory=dict)
    weights: Dict[str, float] = Field(default_factory=dict)
