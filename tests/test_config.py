"""Tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from pureflow.config.loader import ConfigLoader, ConfigLoadError, load_config
from pureflow.config.models import BandConfig, LogFormat, LogLevel, ThresholdsConfig

REPO_CONFIG = Path(__file__).resolve().parent.parent / "config"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("WATER_PROFILE", "LOG_LEVEL", "DATABASE_URL", "REDIS_URL"):
        monkeypatch.delenv(name, raising=False)


def test_missing_directory_uses_defaults(tmp_path):
    config = ConfigLoader(tmp_path / "absent").load()

    assert config.thresholds.active_profile == "freshwater"
    assert config.engine.grace_period_seconds == 60.0
    assert config.logging.format == LogFormat.JSON
    assert config.storage.redis.enabled is False


def test_path_that_is_a_file(tmp_path):
    file_path = tmp_path / "config"
    file_path.write_text("")

    with pytest.raises(ConfigLoadError):
        ConfigLoader(file_path)


def test_repository_config_loads():
    config = load_config(REPO_CONFIG)

    assert config.thresholds.get_profile_names() == ["aquaculture", "freshwater", "saltwater"]
    aquaculture = config.thresholds.get_threshold_set("aquaculture")
    assert aquaculture.band_for("pH").acceptable.high == 9.0
    assert aquaculture.name == "aquaculture"
    assert config.engine.poll_interval_seconds == 30.0


def test_engine_file_values(tmp_path):
    (tmp_path / "engine.yaml").write_text(
        "engine:\n  grace_period_seconds: 120\n  homepage_limit: 5\n"
        "logging:\n  format: text\n"
        "storage:\n  redis:\n    enabled: true\n"
    )

    config = ConfigLoader(tmp_path).load()

    assert config.engine.grace_period_seconds == 120.0
    assert config.engine.homepage_limit == 5
    assert config.logging.format == LogFormat.TEXT
    assert config.storage.redis.enabled is True


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("WATER_PROFILE", "saltwater")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/water")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379")

    config = ConfigLoader(tmp_path).load()

    assert config.thresholds.active_profile == "saltwater"
    assert config.logging.level == LogLevel.DEBUG
    assert config.postgres.url == "postgresql://u:p@db:5432/water"
    assert config.redis.url == "redis://cache:6379"


def test_invalid_log_level_is_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    assert ConfigLoader(tmp_path).load().logging.level == LogLevel.INFO


def test_unknown_profile(tmp_path, monkeypatch):
    monkeypatch.setenv("WATER_PROFILE", "brackish")

    with pytest.raises(ConfigLoadError, match="brackish"):
        ConfigLoader(tmp_path).load()


@pytest.mark.parametrize(
    "filename, content",
    [
        ("thresholds.yaml", "profiles: [unclosed"),
        ("engine.yaml", "- just\n- a list\n"),
        ("engine.yaml", "engine:\n  poll_interval_seconds: 0\n"),
        ("thresholds.yaml", "profiles:\n  freshwater:\n    pH: {min: 6.5}\n"),
    ],
)
def test_invalid_files(tmp_path, filename, content):
    (tmp_path / filename).write_text(content)

    with pytest.raises(ConfigLoadError) as exc_info:
        ConfigLoader(tmp_path).load()
    assert exc_info.value.file_path == tmp_path / filename


def test_empty_file_is_defaults(tmp_path):
    (tmp_path / "thresholds.yaml").write_text("")
    assert ConfigLoader(tmp_path).load().thresholds.active_profile == "freshwater"


def test_band_shapes():
    legacy = BandConfig(min=6.5, max=8.5).to_band()
    assert legacy.is_legacy_shape
    assert legacy.ideal.low == legacy.critical.low == 6.5

    canonical = BandConfig.model_validate(
        {"idealRange": [6.5, 8.5], "acceptableRange": {"low": 6, "high": 9}, "criticalRange": [5.5, 9.5]}
    ).to_band()
    assert canonical.acceptable.low == 6.0
    assert not canonical.is_legacy_shape


@pytest.mark.parametrize(
    "raw",
    [
        {"min": 6.5},
        {"ideal": [6.5, 8.5], "acceptable": [6, 9]},
        {"min": 6, "max": 9, "ideal": [6.5, 8.5]},
        {"ideal": [5, 9], "acceptable": [6, 8], "critical": [4, 10]},
        {"min": 9, "max": 6},
        {},
    ],
)
def test_invalid_bands(raw):
    with pytest.raises(ValidationError):
        BandConfig.model_validate(raw)


def test_threshold_set_for_unknown_profile():
    with pytest.raises(KeyError):
        ThresholdsConfig().get_threshold_set("brackish")
