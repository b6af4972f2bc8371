"""
Data models for the alert engine.

Modules:
    readings: SensorReading and tolerant field parsing
    thresholds: ValueRange, ThresholdBand, ThresholdSet
    alerts: Alert, CandidateAlert, evaluation and result types
    analysis: Trend, anomaly, aggregation and quality index result types
"""

from pureflow.models.alerts import (
    Alert,
    AlertSeverity,
    AlertStatistics,
    AlertType,
    BatchResult,
    CandidateAlert,
    Direction,
    EvaluationSeverity,
    HomepageAlert,
    SyncResult,
    ThresholdEvaluation,
    build_alert_signature,
)
from pureflow.models.analysis import (
    AggregationBucket,
    AnomalyMethod,
    IntervalType,
    ParameterAggregate,
    QualityLevel,
    SeriesStatistics,
    TrendDirection,
    TrendResult,
    WaterQualityIndex,
)
from pureflow.models.readings import DEFAULT_PARAMETERS, SensorReading
from pureflow.models.thresholds import ThresholdBand, ThresholdSet, ValueRange

__all__ = [
    # Readings
    "DEFAULT_PARAMETERS",
    "SensorReading",
    # Thresholds
    "ThresholdBand",
    "ThresholdSet",
    "ValueRange",
    # Alerts
    "Alert",
    "AlertSeverity",
    "AlertStatistics",
    "AlertType",
    "BatchResult",
    "CandidateAlert",
    "Direction",
    "EvaluationSeverity",
    "HomepageAlert",
    "SyncResult",
    "ThresholdEvaluation",
    "build_alert_signature",
    # Analysis
    "AggregationBucket",
    "AnomalyMethod",
    "IntervalType",
    "ParameterAggregate",
    "QualityLevel",
    "SeriesStatistics",
    "TrendDirection",
    "TrendResult",
    "WaterQualityIndex",
]
