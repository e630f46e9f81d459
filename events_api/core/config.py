"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Values are read once at startup; nothing re-reads them at runtime.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    env: str = Field(
        "development",
        description="Operating environment (development|staging|production)",
    )
    version: str = Field(
        "1.0.0",
        description="Version string reported by the healthcheck",
    )
    port: int = Field(
        4000,
        description="API server port",
        ge=1,
        le=65535,
    )
    max_body_bytes: int = Field(
        1_048_576,
        description="Maximum accepted JSON request body size in bytes",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Per-client token bucket limiter configuration."""

    enabled: bool = Field(
        True,
        description="Enable per-client rate limiting",
    )
    rps: float = Field(
        2.0,
        description="Average requests per second allowed per client (refill rate)",
        gt=0,
    )
    burst: int = Field(
        4,
        description="Maximum requests a client may send in a single burst",
        ge=1,
    )
    sweep_interval_seconds: float = Field(
        60.0,
        description="How often idle clients are evicted from the registry",
        gt=0,
    )
    idle_threshold_seconds: float | None = Field(
        None,
        description="Idle time after which a client is evicted (default: 3x sweep interval)",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="LIMITER_",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def _default_idle_threshold(self) -> "RateLimitSettings":
        if self.idle_threshold_seconds is None:
            self.idle_threshold_seconds = self.sweep_interval_seconds * 3
        return self


class CorsSettings(BaseSettings):
    """Cross-origin request configuration."""

    trusted_origins: str = Field(
        "",
        description="Origins allowed to make cross-origin requests (space or comma separated)",
    )

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        case_sensitive=False,
    )

    @field_validator("trusted_origins")
    @classmethod
    def _strip_origins(cls, value: str) -> str:
        return value.strip()

    @property
    def origins(self) -> list[str]:
        """Trusted origins as a list, in configured order."""
        return [item for item in self.trusted_origins.replace(",", " ").split() if item]


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate log file after this many bytes (0 disables)")
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_app_settings() -> AppSettings:
    return AppSettings()


def _build_rate_limit_settings() -> RateLimitSettings:
    return RateLimitSettings()


def _build_cors_settings() -> CorsSettings:
    return CorsSettings()


def _build_log_settings() -> LogSettings:
    return LogSettings()


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    limiter: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    cors: CorsSettings = Field(default_factory=_build_cors_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
