"""
Analytics over historical reading snapshots.

Pure functions; no shared state.

Components:
    trend: Least-squares trend, anomaly detection, descriptive statistics
    aggregator: Time-window aggregation of readings
    quality: Weighted water quality index
"""

from pureflow.analytics.aggregator import (
    aggregate_by_interval,
    bucket_start,
    summarize_parameters,
)
from pureflow.analytics.quality import (
    calculate_wqi,
    parameter_score,
    rate_quality,
    WQI_WEIGHTS,
)
from pureflow.analytics.trend import (
    calculate_statistics,
    calculate_trend,
    detect_anomalies,
    TREND_SLOPE_THRESHOLD,
)

__all__ = [
    # Aggregation
    "aggregate_by_interval",
    "bucket_start",
    "summarize_parameters",
    # Quality index
    "calculate_wqi",
    "parameter_score",
    "rate_quality",
    "WQI_WEIGHTS",
    # Trend
    "calculate_statistics",
    "calculate_trend",
    "detect_anomalies",
    "TREND_SLOPE_THRESHOLD",
]
