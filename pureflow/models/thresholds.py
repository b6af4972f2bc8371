"""
Threshold band models.

A ThresholdBand is the canonical per-parameter configuration: three nested
ranges (ideal inside acceptable inside critical). Deployments still carry
the older ``{min, max}`` shape; ThresholdBand.from_config translates it
into the canonical form.

Translation of the legacy shape:
    ``{min: a, max: b}`` becomes ``ideal = acceptable = critical = [a, b]``.
    A legacy band has no warning zone, so any excursion outside [a, b] is
    classified as critical.

Models:
    ValueRange: Closed numeric interval.
    ThresholdBand: Canonical ideal/acceptable/critical band.
    ThresholdSet: Read-only mapping of parameter to band.
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field, model_validator

from pureflow.errors import ConfigurationError


class ValueRange(BaseModel):
    """
    Closed numeric interval [low, high].

    Example:
        >>> ValueRange(low=6.5, high=8.5).contains(7.0)
        True
    """

    model_config = {"frozen": True, "extra": "forbid"}

    low: float = Field(..., description="Inclusive lower bound")
    high: float = Field(..., description="Inclusive upper bound")

    @model_validator(mode="after")
    def validate_order(self) -> "ValueRange":
        """Ensure low does not exceed high."""
        if self.low > self.high:
            raise ValueError(f"low ({self.low}) must be <= high ({self.high})")
        return self

    @property
    def width(self) -> float:
        """Distance between the bounds."""
        return self.high - self.low

    def contains(self, value: float) -> bool:
        """Check whether value lies inside the interval (inclusive)."""
        return self.low <= value <= self.high

    def contains_range(self, other: "ValueRange") -> bool:
        """Check whether other lies entirely inside this interval."""
        return self.low <= other.low and other.high <= self.high

    @classmethod
    def from_value(cls, raw: Any) -> "ValueRange":
        """
        Build a range from ``[low, high]`` or ``{"low": .., "high": ..}``.

        Raises:
            ValueError: If the value has neither shape.
        """
        if isinstance(raw, ValueRange):
            return raw
        if isinstance(raw, Mapping):
            low = raw.get("low", raw.get("min"))
            high = raw.get("high", raw.get("max"))
            return cls(low=low, high=high)
        if isinstance(raw, Sequence) and not isinstance(raw, str) and len(raw) == 2:
            return cls(low=raw[0], high=raw[1])
        raise ValueError(f"Cannot build a range from {raw!r}")


class ThresholdBand(BaseModel):
    """
    Canonical threshold band for one parameter.

    Attributes:
        ideal: Target operating range.
        acceptable: Range that raises no alert.
        critical: Outer safety limit; outside it the condition is critical.

    Example:
        >>> band = ThresholdBand.from_config({"min": 6.5, "max": 8.5})
        >>> band.acceptable.high
        8.5
    """

    model_config = {"frozen": True, "extra": "forbid"}

    ideal: ValueRange = Field(..., description="Target operating range")
    acceptable: ValueRange = Field(..., description="Range that raises no alert")
    critical: ValueRange = Field(..., description="Outer safety limit")

    @model_validator(mode="after")
    def validate_nesting(self) -> "ThresholdBand":
        """Ensure ideal lies within acceptable and acceptable within critical."""
        if not self.acceptable.contains_range(self.ideal):
            raise ValueError("ideal range must lie within the acceptable range")
        if not self.critical.contains_range(self.acceptable):
            raise ValueError("acceptable range must lie within the critical range")
        return self

    @property
    def is_legacy_shape(self) -> bool:
        """True when all three ranges coincide (translated from min/max)."""
        return self.ideal == self.acceptable == self.critical

    @classmethod
    def from_min_max(cls, minimum: float, maximum: float) -> "ThresholdBand":
        """Translate a legacy ``{min, max}`` band."""
        span = ValueRange(low=minimum, high=maximum)
        return cls(ideal=span, acceptable=span, critical=span)

    @classmethod
    def from_config(cls, raw: Mapping[str, Any]) -> "ThresholdBand":
        """
        Build a band from either configuration shape.

        Args:
            raw: ``{min, max}`` or ``{ideal, acceptable, critical}``; the
                ``idealRange``/``acceptableRange``/``criticalRange`` spellings
                are accepted too.

        Returns:
            ThresholdBand: The canonical band.

        Raises:
            ValueError: If the mapping matches neither shape.
        """
        if isinstance(raw, ThresholdBand):
            return raw

        ideal = raw.get("ideal", raw.get("idealRange"))
        acceptable = raw.get("acceptable", raw.get("acceptableRange"))
        critical = raw.get("critical", raw.get("criticalRange"))
        if ideal is not None and acceptable is not None and critical is not None:
            return cls(
                ideal=ValueRange.from_value(ideal),
                acceptable=ValueRange.from_value(acceptable),
                critical=ValueRange.from_value(critical),
            )

        if "min" in raw and "max" in raw:
            return cls.from_min_max(raw["min"], raw["max"])

        raise ValueError(
            "threshold band needs either min/max or ideal/acceptable/critical, "
            f"got keys {sorted(raw)}"
        )


class ThresholdSet:
    """
    Read-only mapping of parameter name to ThresholdBand.

    Lookups are case-insensitive so that ``ph`` finds the ``pH`` band.
    The set is built once from configuration and never mutated.

    Example:
        >>> thresholds = ThresholdSet({"pH": ThresholdBand.from_min_max(6.5, 8.5)})
        >>> thresholds.band_for("ph").critical.low
        6.5
    """

    def __init__(self, bands: Mapping[str, ThresholdBand], name: Optional[str] = None) -> None:
        self._bands: Dict[str, ThresholdBand] = dict(bands)
        self._by_lower: Dict[str, str] = {key.lower(): key for key in self._bands}
        self.name = name

    @classmethod
    def from_config(
        cls,
        raw: Mapping[str, Mapping[str, Any]],
        name: Optional[str] = None,
    ) -> "ThresholdSet":
        """Build a set from a parameter to raw band mapping."""
        return cls(
            {parameter: ThresholdBand.from_config(band) for parameter, band in raw.items()},
            name=name,
        )

    @property
    def parameters(self) -> List[str]:
        """Monitored parameter names in configuration order."""
        return list(self._bands)

    def band_for(self, parameter: str) -> ThresholdBand:
        """
        Get the band for a parameter.

        Raises:
            ConfigurationError: If the parameter has no band.
        """
        key = self._by_lower.get(parameter.lower())
        if key is None:
            raise ConfigurationError(parameter)
        return self._bands[key]

    def get(self, parameter: str) -> Optional[ThresholdBand]:
        """Get the band for a parameter, or None."""
        key = self._by_lower.get(parameter.lower())
        return self._bands[key] if key is not None else None

    def __contains__(self, parameter: object) -> bool:
        return isinstance(parameter, str) and parameter.lower() in self._by_lower

    def __iter__(self) -> Iterator[str]:
        return iter(self._bands)

    def __len__(self) -> int:
        return len(self._bands)
