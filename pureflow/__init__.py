"""
PureFlow water-quality alert engine.

Turns periodic water-quality sensor readings (pH, temperature, turbidity,
salinity, rain flag) into a stable, deduplicated set of active alerts with
remediation advice, and persists new alerts to a durable store.

This package provides:
- Data models for readings, threshold bands, alerts and analysis results
- Threshold evaluation, recommendation rules and the alert lifecycle manager
- A bounded sync queue for at-least-once alert persistence
- Trend, anomaly and time-bucket aggregation helpers
- Configuration management, storage clients and an HTTP display surface
"""

__version__ = "0.1.0"
