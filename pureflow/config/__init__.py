"""
Configuration management for the alert engine.

This module handles loading and validating configuration from YAML files.
All configuration values are validated using Pydantic models so that
configuration errors surface at startup.

The configuration system supports:
- Threshold profiles per water type (legacy min/max or canonical bands)
- Engine timing and capacity settings
- Logging, HTTP API and Redis mirror settings

Configuration is loaded from YAML files in the config/ directory:
    - thresholds.yaml: Threshold profiles
    - engine.yaml: Engine and service settings

Environment variables can override connection settings:
    - DATABASE_URL: PostgreSQL connection URL
    - REDIS_URL: Redis connection URL
    - LOG_LEVEL: Application log level
    - WATER_PROFILE: Active threshold profile

Example:
    >>> from pureflow.config import load_config
    >>> config = load_config()
    >>> thresholds = config.thresholds.get_threshold_set()

Modules:
    loader: Configuration file loading utilities
    models: Pydantic models for configuration validation
"""

from pureflow.config.loader import ConfigLoadError, ConfigLoader, load_config
from pureflow.config.models import (
    # Enums
    LogFormat,
    LogLevel,
    # Thresholds
    BandConfig,
    ThresholdsConfig,
    # Service settings
    ApiConfig,
    EngineConfig,
    LoggingConfig,
    RedisStorageConfig,
    StorageConfig,
    # Connections
    PostgresConnectionConfig,
    RedisConnectionConfig,
    # Root
    AppConfig,
)

__all__ = [
    # Loader
    "ConfigLoadError",
    "ConfigLoader",
    "load_config",
    # Enums
    "LogFormat",
    "LogLevel",
    # Thresholds
    "BandConfig",
    "ThresholdsConfig",
    # Service settings
    "ApiConfig",
    "EngineConfig",
    "LoggingConfig",
    "RedisStorageConfig",
    "StorageConfig",
    # Connections
    "PostgresConnectionConfig",
    "RedisConnectionConfig",
    # Root
    "AppConfig",
]
