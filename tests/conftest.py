"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment before settings are imported so no developer .env
file leaks into the test run.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from events_api.core.app_factory import create_app
from events_api.core.config import (
    AppSettings,
    CorsSettings,
    LogSettings,
    RateLimitSettings,
    Settings,
)


class FakeClock:
    """Deterministic monotonic clock; advance it by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


def build_settings(
    *,
    enabled: bool = True,
    rps: float = 2.0,
    burst: int = 4,
    trusted_origins: str = "",
    max_body_bytes: int = 1_048_576,
    request_id_header: str = "X-Request-ID",
) -> Settings:
    return Settings(
        app=AppSettings(env="testing", version="1.0.0", max_body_bytes=max_body_bytes),
        limiter=RateLimitSettings(enabled=enabled, rps=rps, burst=burst),
        cors=CorsSettings(trusted_origins=trusted_origins),
        log=LogSettings(level="WARNING", request_id_header=request_id_header),
    )


@pytest.fixture
def make_app(fake_clock: FakeClock) -> Callable[..., FastAPI]:
    """Build an isolated app (fresh registry and store) on the fake clock."""

    def _make(**overrides) -> FastAPI:
        return create_app(build_settings(**overrides), clock=fake_clock)

    return _make


@pytest.fixture
def unlimited_client(make_app) -> TestClient:
    """Client for an app with rate limiting switched off."""
    return TestClient(make_app(enabled=False))
