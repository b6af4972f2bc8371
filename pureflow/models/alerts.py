"""
Alert data models for the water-quality alert engine.

This module defines the threshold evaluation result, the candidate alerts
produced for one reading, the Alert record owned by the lifecycle manager,
and the result types returned to callers.

Models:
    AlertType: Display category (success, warning, error, info)
    AlertSeverity: Ordering severity (low, medium, high)
    Direction: Which side of a band was crossed (high, low, normal)
    EvaluationSeverity: Threshold classification (critical, warning, normal)
    ThresholdEvaluation: Result of evaluating one parameter value
    CandidateAlert: Alert condition observed in the current batch
    Alert: Active or resolved alert instance
    BatchResult: Outcome of processing one reading batch
    SyncResult: Outcome of one sync queue flush
    HomepageAlert: Alert with a short display string
    AlertStatistics: Counters for the statistics screen
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from pureflow.models.thresholds import ThresholdBand


class AlertType(str, Enum):
    """
    Alert display category.

    Attributes:
        SUCCESS: Condition returned to normal.
        WARNING: Value approaching or past the acceptable band.
        ERROR: Value past a safety limit.
        INFO: Informational, e.g. rain detected.
    """

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


class AlertSeverity(str, Enum):
    """
    Alert severity used for ordering and statistics.

    Attributes:
        HIGH: Needs immediate attention.
        MEDIUM: Investigate soon.
        LOW: Awareness only.
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, higher is more severe."""
        return _SEVERITY_RANK[self]

    @classmethod
    def from_alert_type(cls, alert_type: AlertType) -> "AlertSeverity":
        """
        Derive severity from the alert type.

        error maps to high, warning to medium, info and success to low.
        """
        if alert_type == AlertType.ERROR:
            return cls.HIGH
        if alert_type == AlertType.WARNING:
            return cls.MEDIUM
        return cls.LOW


_SEVERITY_RANK = {
    AlertSeverity.HIGH: 3,
    AlertSeverity.MEDIUM: 2,
    AlertSeverity.LOW: 1,
}


class Direction(str, Enum):
    """Which edge of a threshold band a value crossed."""

    HIGH = "high"
    LOW = "low"
    NORMAL = "normal"


class EvaluationSeverity(str, Enum):
    """Threshold classification of a single value."""

    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"


class ThresholdEvaluation(BaseModel):
    """
    Result of evaluating one parameter value against its band.

    Attributes:
        direction: Edge crossed, or normal.
        severity: critical, warning or normal.
        deviation_percent: Distance from the ideal edge, in percent.
        within_critical_range: False once the value leaves the critical band.

    Example:
        >>> evaluation = ThresholdEvaluation(
        ...     direction=Direction.HIGH,
        ...     severity=EvaluationSeverity.CRITICAL,
        ...     deviation_percent=10.59,
        ...     within_critical_range=False,
        ... )
        >>> evaluation.is_alerting
        True
    """

    model_config = {"frozen": True, "extra": "forbid"}

    direction: Direction = Field(
        default=Direction.NORMAL,
        description="Edge crossed, or normal",
    )
    severity: EvaluationSeverity = Field(
        default=EvaluationSeverity.NORMAL,
        description="Threshold classification",
    )
    deviation_percent: float = Field(
        default=0.0,
        description="Distance from the ideal edge in percent",
        ge=0.0,
    )
    within_critical_range: bool = Field(
        default=True,
        description="Whether the value is still inside the critical band",
    )

    @property
    def is_alerting(self) -> bool:
        """Check whether this evaluation should produce an alert."""
        return self.severity != EvaluationSeverity.NORMAL


def build_alert_signature(
    parameter: str,
    alert_type: AlertType,
    title: str,
    value: float,
) -> str:
    """
    Build the identity string used to recognize the same alert across batches.

    Args:
        parameter: Parameter name.
        alert_type: Alert type.
        title: Alert title.
        value: Triggering value, rounded to two decimals.

    Returns:
        str: ``parameter-type-title-value``.

    Example:
        >>> build_alert_signature("pH", AlertType.ERROR, "pH High", 9.4)
        'pH-error-pH High-9.4'
    """
    return f"{parameter}-{alert_type.value}-{title}-{round(value, 2)}"


class CandidateAlert(BaseModel):
    """
    Alert condition observed in the current batch.

    Candidates are produced fresh for every batch and compared by signature
    against the active alerts held by the manager.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    parameter: str = Field(..., description="Parameter name", min_length=1)
    type: AlertType = Field(..., description="Alert type")
    title: str = Field(..., description="Short title")
    message: str = Field(..., description="Human-readable message")
    value: float = Field(..., description="Triggering value")
    threshold: Optional[ThresholdBand] = Field(
        default=None,
        description="Band the value was evaluated against",
    )
    evaluation: Optional[ThresholdEvaluation] = Field(
        default=None,
        description="Evaluation that produced this candidate",
    )

    @property
    def signature(self) -> str:
        """Alert signature for deduplication."""
        return build_alert_signature(self.parameter, self.type, self.title, self.value)


class Alert(BaseModel):
    """
    Active or resolved alert instance.

    While active an Alert is owned by the AlertManager, which replaces it
    with updated copies; once resolved it is an immutable record.

    Attributes:
        alert_id: Unique identifier (``alert_{ms}_{counter}_{suffix}``).
        parameter: Parameter that triggered the alert.
        type: Alert type.
        severity: Severity derived from the type.
        title: Short title.
        message: Human-readable message.
        value: Triggering value.
        threshold_snapshot: Band in force when the alert was created.
        direction: Edge crossed.
        deviation_percent: Deviation from the ideal edge when created.
        recommendations: Ordered remediation steps.
        created_at: When the alert was created.
        last_seen: When the condition was last observed.
        occurrence_count: Number of batches that observed the condition.
        data_signature: Signature of the batch that created the alert.
        resolved_at: When the alert was resolved (None while active).

    Example:
        >>> alert = Alert(
        ...     alert_id="alert_1740816000000_1_k3j9x0a2b",
        ...     parameter="pH",
        ...     type=AlertType.ERROR,
        ...     severity=AlertSeverity.HIGH,
        ...     title="pH High",
        ...     message="pH is above maximum safe level!",
        ...     value=9.4,
        ...     created_at=datetime(2025, 3, 1, 8, 0),
        ...     last_seen=datetime(2025, 3, 1, 8, 0),
        ...     data_signature="ts=2025-03-01T08:00:00|pH=9.4|rain=null",
        ... )
        >>> alert.is_active
        True
    """

    model_config = {"extra": "forbid"}

    # Identification
    alert_id: str = Field(..., description="Unique identifier for this alert")
    parameter: str = Field(..., description="Parameter that triggered the alert")

    # Classification
    type: AlertType = Field(..., description="Alert type")
    severity: AlertSeverity = Field(..., description="Severity derived from type")

    # Content
    title: str = Field(..., description="Short title")
    message: str = Field(..., description="Human-readable message")
    value: float = Field(..., description="Triggering value")
    threshold_snapshot: Optional[ThresholdBand] = Field(
        default=None,
        description="Band in force when the alert was created",
    )
    direction: Direction = Field(
        default=Direction.NORMAL,
        description="Edge crossed",
    )
    deviation_percent: float = Field(
        default=0.0,
        description="Deviation from the ideal edge when created",
    )
    recommendations: List[str] = Field(
        default_factory=list,
        description="Ordered remediation steps",
    )

    # Lifecycle
    created_at: datetime = Field(..., description="When the alert was created")
    last_seen: datetime = Field(..., description="When the condition was last observed")
    occurrence_count: int = Field(
        default=1,
        description="Number of batches that observed the condition",
        ge=1,
    )
    data_signature: str = Field(..., description="Signature of the creating batch")
    resolved_at: Optional[datetime] = Field(
        default=None,
        description="When the alert was resolved",
    )

    @property
    def signature(self) -> str:
        """Alert signature for deduplication."""
        return build_alert_signature(self.parameter, self.type, self.title, self.value)

    @property
    def is_active(self) -> bool:
        """Check if the alert is currently active (not resolved)."""
        return self.resolved_at is None

    def touch(self, timestamp: datetime) -> "Alert":
        """
        Record another observation of the condition.

        Args:
            timestamp: Observation time.

        Returns:
            Alert: Copy with last_seen updated and occurrence_count incremented.
        """
        return self.model_copy(
            update={
                "last_seen": timestamp,
                "occurrence_count": self.occurrence_count + 1,
            }
        )

    def resolve(self, timestamp: datetime) -> "Alert":
        """
        Resolve the alert.

        Args:
            timestamp: Resolution time.

        Returns:
            Alert: Copy with resolved_at set.
        """
        return self.model_copy(update={"resolved_at": timestamp})


class BatchResult(BaseModel):
    """
    Outcome of processing one reading batch.

    Attributes:
        active_alerts: Active alerts after the batch, display ordered.
        new_alerts: Alerts created by this batch.
        updated_alerts: Active alerts observed again by this batch.
        resolved_alerts: Alerts resolved by this batch.
        skipped: True if the batch repeated an already processed one.
        data_signature: Signature of the batch's most recent reading.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    active_alerts: List[Alert] = Field(default_factory=list)
    new_alerts: List[Alert] = Field(default_factory=list)
    updated_alerts: List[Alert] = Field(default_factory=list)
    resolved_alerts: List[Alert] = Field(default_factory=list)
    skipped: bool = Field(default=False)
    data_signature: str = Field(...)


class SyncResult(BaseModel):
    """Outcome of one sync queue flush."""

    model_config = {"frozen": True, "extra": "forbid"}

    synced: int = Field(default=0, ge=0, description="Alerts written")
    errors: int = Field(default=0, ge=0, description="Alerts that failed and were requeued")
    total: int = Field(default=0, ge=0, description="Alerts attempted")


class HomepageAlert(BaseModel):
    """Active alert with a short display string, e.g. ``PH: 9.40``."""

    model_config = {"frozen": True, "extra": "forbid"}

    alert: Alert
    display_message: str


class AlertStatistics(BaseModel):
    """
    Counters for the statistics screen.

    Attributes:
        active_alerts: Number of active alerts.
        history_size: Number of batch signatures remembered.
        pending_sync: Alerts waiting to be persisted.
        dropped_from_queue: Alerts evicted from a full sync queue.
        last_processed: When the last non-skipped batch was committed.
        severity_breakdown: Active alert counts by severity.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    active_alerts: int = Field(default=0, ge=0)
    history_size: int = Field(default=0, ge=0)
    pending_sync: int = Field(default=0, ge=0)
    dropped_from_queue: int = Field(default=0, ge=0)
    last_processed: Optional[datetime] = Field(default=None)
    severity_breakdown: Dict[str, int] = Field(default_factory=dict)
