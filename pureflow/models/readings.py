"""
Sensor reading model and tolerant field parsing.

Readings arrive from devices and document stores in loosely-typed shapes:
numeric strings, epoch timestamps in seconds or milliseconds, mixed-case
parameter keys. This module normalizes them into SensorReading without
ever failing the whole reading; a malformed field is logged and dropped.

Models:
    SensorReading: One timestamped set of parameter values plus rain flag.

Functions:
    parse_numeric: Interpret a raw parameter value.
    parse_timestamp: Interpret a raw timestamp.
    parse_rain_flag: Interpret a raw rain flag.

Example:
    >>> reading = SensorReading.from_raw(
    ...     {"timestamp": "2025-03-01T08:00:00Z", "pH": "7.9", "temperature": 27.4}
    ... )
    >>> reading.value("pH")
    7.9
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog
from pydantic import BaseModel, Field, field_validator

from pureflow.errors import ReadingValidationError

logger = structlog.get_logger(__name__)


# Parameters monitored when no explicit list is supplied
DEFAULT_PARAMETERS = ("pH", "temperature", "turbidity", "salinity")

TIMESTAMP_KEYS = ("timestamp", "datetime", "createdAt", "created_at", "time")
RAIN_KEYS = ("is_raining", "isRaining", "rain")

# Epoch values above this are milliseconds
_EPOCH_MS_CUTOFF = 100_000_000_000


def parse_numeric(field: str, raw: Any) -> Optional[float]:
    """
    Interpret a raw parameter value as a finite float.

    Args:
        field: Field name, used for error reporting.
        raw: The raw value (number, numeric string, or None).

    Returns:
        Optional[float]: The value, or None when the field is absent.

    Raises:
        ReadingValidationError: If the value is present but not a finite number.

    Example:
        >>> parse_numeric("pH", "7.25")
        7.25
        >>> parse_numeric("pH", None) is None
        True
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ReadingValidationError(field, raw, "boolean is not a measurement")

    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError as e:
            raise ReadingValidationError(field, raw, "not a number") from e
    else:
        raise ReadingValidationError(field, raw, f"unsupported type {type(raw).__name__}")

    if not math.isfinite(value):
        raise ReadingValidationError(field, raw, "not a finite number")
    return value


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """
    Interpret a raw timestamp.

    Accepts datetimes, ISO-8601 strings (a trailing ``Z`` is allowed) and
    epoch seconds or milliseconds. Naive values are taken to be UTC.

    Args:
        raw: The raw timestamp.

    Returns:
        Optional[datetime]: Timezone-aware timestamp, or None if absent.

    Raises:
        ReadingValidationError: If the value cannot be interpreted.
    """
    if raw is None:
        return None

    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
        seconds = raw / 1000 if raw > _EPOCH_MS_CUTOFF else raw
        try:
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ReadingValidationError("timestamp", raw, "epoch out of range") from e
    elif isinstance(raw, str):
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ReadingValidationError("timestamp", raw, "not an ISO-8601 timestamp") from e
    else:
        raise ReadingValidationError(
            "timestamp", raw, f"unsupported type {type(raw).__name__}"
        )

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_rain_flag(raw: Any) -> Optional[bool]:
    """
    Interpret a raw rain flag.

    Args:
        raw: Boolean, 0/1, or a yes/no style string.

    Returns:
        Optional[bool]: The flag, or None if absent.

    Raises:
        ReadingValidationError: If the value is not recognizable.
    """
    if raw is None or isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in ("true", "yes", "1"):
            return True
        if text in ("false", "no", "0", ""):
            return False
    raise ReadingValidationError("is_raining", raw, "not a boolean")


class SensorReading(BaseModel):
    """
    One timestamped set of water-quality measurements.

    Attributes:
        timestamp: When the reading was taken (None if unknown).
        values: Parameter name to value; None means missing or malformed.
        is_raining: Rain flag reported by the device (None if unknown).

    Example:
        >>> reading = SensorReading(
        ...     timestamp=datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc),
        ...     values={"pH": 7.2, "temperature": None},
        ... )
        >>> reading.value("temperature") is None
        True
    """

    model_config = {"frozen": True, "extra": "forbid"}

    timestamp: Optional[datetime] = Field(
        default=None,
        description="When the reading was taken",
    )
    values: Dict[str, Optional[float]] = Field(
        default_factory=dict,
        description="Parameter values keyed by parameter name",
    )
    is_raining: Optional[bool] = Field(
        default=None,
        description="Rain flag reported by the device",
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def normalize_timestamp(cls, v: Any) -> Optional[datetime]:
        """Parse the timestamp; naive values are taken to be UTC."""
        try:
            return parse_timestamp(v)
        except ReadingValidationError as e:
            raise ValueError(str(e)) from e

    def value(self, parameter: str) -> Optional[float]:
        """
        Get a usable value for a parameter.

        Args:
            parameter: Parameter name as stored in ``values``.

        Returns:
            Optional[float]: The value, or None if missing or not finite.
        """
        value = self.values.get(parameter)
        if value is None or not math.isfinite(value):
            return None
        return value

    @property
    def measured_parameters(self) -> List[str]:
        """Names of parameters that carry a usable value, sorted."""
        return sorted(name for name in self.values if self.value(name) is not None)

    @classmethod
    def from_raw(
        cls,
        raw: Mapping[str, Any],
        parameters: Iterable[str] = DEFAULT_PARAMETERS,
    ) -> "SensorReading":
        """
        Build a reading from a loosely-typed mapping without raising.

        Parameter keys are matched case-insensitively, so ``ph`` fills
        ``pH``. Values may also be nested under a ``values`` key. Any field
        that fails validation is logged and stored as None.

        Args:
            raw: Mapping as received from a device or a store.
            parameters: Parameter names to extract.

        Returns:
            SensorReading: The normalized reading.

        Example:
            >>> reading = SensorReading.from_raw({"ph": "abc", "salinity": 3})
            >>> reading.values
            {'pH': None, 'salinity': 3.0}
        """
        source: Mapping[str, Any] = raw
        nested = raw.get("values")
        if isinstance(nested, Mapping):
            source = {**raw, **nested}

        by_lower = {str(key).lower(): key for key in source}

        values: Dict[str, Optional[float]] = {}
        for parameter in parameters:
            key = by_lower.get(parameter.lower())
            if key is None:
                continue
            try:
                values[parameter] = parse_numeric(parameter, source[key])
            except ReadingValidationError as e:
                _log_invalid_field(e)
                values[parameter] = None

        timestamp: Optional[datetime] = None
        for key in TIMESTAMP_KEYS:
            if key in source:
                try:
                    timestamp = parse_timestamp(source[key])
                except ReadingValidationError as e:
                    _log_invalid_field(e)
                break

        is_raining: Optional[bool] = None
        for key in RAIN_KEYS:
            if key in source:
                try:
                    is_raining = parse_rain_flag(source[key])
                except ReadingValidationError as e:
                    _log_invalid_field(e)
                break

        return cls(timestamp=timestamp, values=values, is_raining=is_raining)


def _log_invalid_field(error: ReadingValidationError) -> None:
    logger.warning(
        "reading_field_invalid",
        field=error.field,
        reason=error.reason,
        raw_value=repr(error.raw_value),
    )
