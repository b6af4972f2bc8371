"""
Configuration loader for YAML-based application configuration.

This module provides utilities to load and validate configuration from YAML
files. All configuration is validated using Pydantic models to catch
configuration errors at startup.

Configuration files read (both optional):
    - config/thresholds.yaml: Threshold profiles per water type
    - config/engine.yaml: Engine, logging, API and storage settings

Environment variables override:
    - DATABASE_URL: PostgreSQL connection URL
    - REDIS_URL: Redis connection URL
    - LOG_LEVEL: Application log level
    - WATER_PROFILE: Active threshold profile

Example:
    >>> from pureflow.config.loader import load_config
    >>> config = load_config("config")
    >>> config.thresholds.active_profile
    'freshwater'
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import ValidationError

from pureflow.config.models import (
    ApiConfig,
    AppConfig,
    EngineConfig,
    LoggingConfig,
    LogLevel,
    PostgresConnectionConfig,
    RedisConnectionConfig,
    StorageConfig,
    ThresholdsConfig,
)

logger = structlog.get_logger(__name__)


THRESHOLDS_FILE = "thresholds.yaml"
ENGINE_FILE = "engine.yaml"


class ConfigLoadError(Exception):
    """
    Raised when configuration loading fails.

    Attributes:
        message: Error message describing what went wrong.
        file_path: Path to the file that caused the error, if applicable.
        cause: Original exception that caused the error, if any.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.file_path = file_path
        self.cause = cause
        super().__init__(message)


class ConfigLoader:
    """
    Loads and validates application configuration from YAML files.

    Expects the following directory structure:
        config/
        ├── thresholds.yaml  - Threshold profiles (optional)
        └── engine.yaml      - Engine and service settings (optional)

    A missing file falls back to model defaults. A file that exists but is
    malformed or invalid raises ConfigLoadError.

    Example:
        >>> loader = ConfigLoader("config")
        >>> config = loader.load()
        >>> config.thresholds.get_profile_names()
        ['aquaculture', 'freshwater', 'saltwater']
    """

    def __init__(self, config_dir: Path | str = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Path to configuration directory (default: 'config').

        Raises:
            ConfigLoadError: If the path exists but is not a directory.
        """
        self.config_dir = Path(config_dir)
        if self.config_dir.exists() and not self.config_dir.is_dir():
            raise ConfigLoadError(
                f"Configuration path is not a directory: {self.config_dir}",
                file_path=self.config_dir,
            )

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """
        Load a YAML file from the config directory.

        Args:
            filename: Name of YAML file (e.g., 'engine.yaml').

        Returns:
            Dict containing parsed YAML content; empty if the file is absent.

        Raises:
            ConfigLoadError: If the file is unreadable, invalid YAML, or not a mapping.
        """
        file_path = self.config_dir / filename
        if not file_path.exists():
            logger.info("config_file_missing", file=str(file_path))
            return {}

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(
                f"Invalid YAML syntax in {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except OSError as e:
            raise ConfigLoadError(
                f"Error reading {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"Configuration file must contain a mapping: {file_path}",
                file_path=file_path,
            )
        return data

    def _load_thresholds(self) -> ThresholdsConfig:
        """
        Load threshold profiles from thresholds.yaml.

        Environment variables:
            - WATER_PROFILE: Overrides active_profile

        Returns:
            ThresholdsConfig object.

        Raises:
            ConfigLoadError: If validation fails.
        """
        data = self._load_yaml(THRESHOLDS_FILE)

        profile_override = os.getenv("WATER_PROFILE")
        if profile_override:
            data = {**data, "active_profile": profile_override}

        try:
            return ThresholdsConfig(**data)
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid thresholds configuration: {e}",
                file_path=self.config_dir / THRESHOLDS_FILE,
                cause=e,
            ) from e

    def _load_engine_sections(self) -> Dict[str, Any]:
        """
        Load engine, logging, api and storage sections from engine.yaml.

        Returns:
            Dict of validated section models keyed by AppConfig field name.

        Raises:
            ConfigLoadError: If validation fails.
        """
        data = self._load_yaml(ENGINE_FILE)

        try:
            logging_data = dict(data.get("logging") or {})
            log_level = self._get_log_level()
            if log_level is not None:
                logging_data["level"] = log_level

            return {
                "engine": EngineConfig(**(data.get("engine") or {})),
                "logging": LoggingConfig(**logging_data),
                "api": ApiConfig(**(data.get("api") or {})),
                "storage": StorageConfig(**(data.get("storage") or {})),
            }
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid engine configuration: {e}",
                file_path=self.config_dir / ENGINE_FILE,
                cause=e,
            ) from e

    def _load_redis_connection(self) -> RedisConnectionConfig:
        """
        Load Redis connection configuration from environment.

        Environment variables:
            - REDIS_URL: Redis connection URL (default: redis://localhost:6379)

        Returns:
            RedisConnectionConfig object.
        """
        redis_url = os.getenv("REDIS_URL", "redis://localhost:6379")
        return RedisConnectionConfig(url=redis_url)

    def _load_postgres_connection(self) -> PostgresConnectionConfig:
        """
        Load PostgreSQL connection configuration from environment.

        Environment variables:
            - DATABASE_URL: PostgreSQL connection URL

        Returns:
            PostgresConnectionConfig object.
        """
        db_url = os.getenv("DATABASE_URL")
        if db_url:
            return PostgresConnectionConfig(url=db_url)
        return PostgresConnectionConfig()

    def _get_log_level(self) -> Optional[LogLevel]:
        """
        Get log level from environment.

        Environment variables:
            - LOG_LEVEL: Log level

        Returns:
            LogLevel enum value, or None when unset or unrecognized.
        """
        level_str = os.getenv("LOG_LEVEL")
        if not level_str:
            return None
        try:
            return LogLevel(level_str.upper())
        except ValueError:
            logger.warning("log_level_invalid", value=level_str)
            return None

    def load(self) -> AppConfig:
        """
        Load and validate all configuration files.

        Returns:
            AppConfig: Validated application configuration.

        Raises:
            ConfigLoadError: If any configuration is invalid.

        Example:
            >>> loader = ConfigLoader("config")
            >>> config = loader.load()
            >>> config.engine.poll_interval_seconds
            30.0
        """
        try:
            thresholds = self._load_thresholds()
            sections = self._load_engine_sections()

            config = AppConfig(
                thresholds=thresholds,
                redis=self._load_redis_connection(),
                postgres=self._load_postgres_connection(),
                **sections,
            )

            logger.info(
                "config_loaded",
                config_dir=str(self.config_dir),
                threshold_profile=thresholds.active_profile,
            )
            return config

        except ConfigLoadError:
            raise
        except ValidationError as e:
            raise ConfigLoadError(
                f"Configuration validation failed: {e}",
                cause=e,
            ) from e
        except Exception as e:
            raise ConfigLoadError(
                f"Unexpected error loading configuration: {e}",
                cause=e,
            ) from e


def load_config(config_dir: Path | str = "config") -> AppConfig:
    """
    Convenience function to load application configuration.

    Args:
        config_dir: Path to configuration directory (default: 'config').

    Returns:
        AppConfig: Validated application configuration.

    Raises:
        ConfigLoadError: If configuration loading fails.

    Example:
        >>> from pureflow.config import load_config
        >>> config = load_config()
        >>> thresholds = config.thresholds.get_threshold_set()
    """
    loader = ConfigLoader(config_dir)
    return loader.load()
