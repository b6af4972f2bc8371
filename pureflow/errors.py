"""
Exception taxonomy for the alert engine.

Every error here is non-fatal to the engine: each one is raised at the
point where the problem is detected and handled one layer up, where the
affected parameter is skipped, the parameter is treated as unmonitored, or
the persistence attempt is retried on the next flush.

Exceptions:
    PureFlowError: Base class for engine errors.
    ReadingValidationError: A reading field is missing or malformed.
    ConfigurationError: No threshold band is configured for a parameter.
    PersistenceError: Writing alerts to the durable store failed.
"""

from typing import Any, Optional


class PureFlowError(Exception):
    """Base exception for alert engine errors."""

    pass


class ReadingValidationError(PureFlowError):
    """
    Raised when a sensor reading field cannot be interpreted.

    Attributes:
        field: Name of the offending field.
        raw_value: The value as received.
        reason: Short description of the problem.
    """

    def __init__(self, field: str, raw_value: Any, reason: str) -> None:
        self.field = field
        self.raw_value = raw_value
        self.reason = reason
        super().__init__(f"Invalid value for '{field}': {reason} (got {raw_value!r})")


class ConfigurationError(PureFlowError):
    """
    Raised when a parameter has no threshold band configured.

    Attributes:
        parameter: The parameter that has no band.
    """

    def __init__(self, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(f"No threshold band configured for parameter '{parameter}'")


class PersistenceError(PureFlowError):
    """
    Raised when a batch of alerts could not be written to the store.

    Attributes:
        message: Error message describing what went wrong.
        alert_count: Number of alerts in the failed batch.
        cause: Original exception that caused the error, if any.
    """

    def __init__(
        self,
        message: str,
        alert_count: int = 0,
        cause: Optional[Exception] = None,
    ) -> None:
        self.message = message
        self.alert_count = alert_count
        self.cause = cause
        super().__init__(message)
