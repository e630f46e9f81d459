"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from events_api.core.config import AppSettings, CorsSettings, LogSettings, RateLimitSettings


def test_rate_limit_defaults(monkeypatch) -> None:
    for name in ("LIMITER_ENABLED", "LIMITER_RPS", "LIMITER_BURST", "LIMITER_SWEEP_INTERVAL_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("LIMITER_IDLE_THRESHOLD_SECONDS", raising=False)

    cfg = RateLimitSettings()

    assert cfg.enabled is True
    assert cfg.rps == 2.0
    assert cfg.burst == 4
    assert cfg.sweep_interval_seconds == 60.0
    assert cfg.idle_threshold_seconds == 180.0


def test_rate_limit_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("LIMITER_ENABLED", "false")
    monkeypatch.setenv("LIMITER_RPS", "0.5")
    monkeypatch.setenv("LIMITER_BURST", "10")
    monkeypatch.setenv("LIMITER_SWEEP_INTERVAL_SECONDS", "5")
    monkeypatch.delenv("LIMITER_IDLE_THRESHOLD_SECONDS", raising=False)

    cfg = RateLimitSettings()

    assert cfg.enabled is False
    assert cfg.rps == 0.5
    assert cfg.burst == 10
    assert cfg.idle_threshold_seconds == 15.0


def test_explicit_idle_threshold_is_kept() -> None:
    cfg = RateLimitSettings(sweep_interval_seconds=10, idle_threshold_seconds=12)

    assert cfg.idle_threshold_seconds == 12


@pytest.mark.parametrize("overrides", [{"rps": 0}, {"rps": -1}, {"burst": 0}, {"sweep_interval_seconds": 0}])
def test_invalid_rate_limit_values_rejected(overrides) -> None:
    with pytest.raises(ValidationError):
        RateLimitSettings(**overrides)


def test_cors_origins_split_on_spaces_and_commas() -> None:
    cfg = CorsSettings(trusted_origins=" https://a.example.com,https://b.example.com  https://c.example.com ")

    assert cfg.origins == [
        "https://a.example.com",
        "https://b.example.com",
        "https://c.example.com",
    ]


def test_cors_origins_empty_by_default(monkeypatch) -> None:
    monkeypatch.delenv("CORS_TRUSTED_ORIGINS", raising=False)

    assert CorsSettings().origins == []


def test_log_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("LOG_FORMAT", "plain")
    monkeypatch.setenv("LOG_REQUEST_ID_HEADER", "X-Correlation-ID")

    cfg = LogSettings()

    assert cfg.format == "plain"
    assert cfg.request_id_header == "X-Correlation-ID"


def test_app_settings_fields() -> None:
    assert set(AppSettings.model_fields) == {"env", "version", "port", "max_body_bytes"}
