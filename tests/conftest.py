"""
Shared test fixtures for the gatekeeper tests.

Provides isolated apps (one temporary data directory per test), service
factories, HTTP clients and bearer-token helpers.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt

from gatekeeper.config import Settings
from gatekeeper.main import create_app
from gatekeeper.models.rate_limit import RateRule
from gatekeeper.services.blocks import BlockStore
from gatekeeper.services.container import GatekeeperServices
from gatekeeper.services.rate_limiter import FixedWindowRateLimiter
from gatekeeper.services.rules import RateRuleStore
from gatekeeper.services.suspicious import SuspiciousActivityTracker
from gatekeeper.storage import (
    BLOCKS_FILE,
    FAILURES_FILE,
    FLAGS_FILE,
    RATE_RULES_FILE,
    JsonFileStore,
)

TEST_JWT_SECRET = "test-jwt-secret"
TEST_UNBLOCK_SECRET = "test-unblock-secret"


# --- Settings and App Fixtures ---


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    """
    Settings for HTTP tests.

    Pattern and spike detection are effectively disabled so that a test can
    send a burst of requests from one address; tests that exercise them
    build their own settings.
    """
    return Settings(
        _env_file=None,
        data_dir=data_dir,
        jwt_secret=TEST_JWT_SECRET,
        unblock_secret=TEST_UNBLOCK_SECRET,
        trust_proxy_headers=True,
        pattern_interval_ms=0,
        spike_threshold=10_000,
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def services(app: FastAPI) -> GatekeeperServices:
    return app.state.services


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True,
    ) as client:
        yield client


# --- Authentication Helper Fixtures ---


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Factory fixture for bearer tokens signed with the test secret."""

    def _make_token(user_id: str, role: str = "user", secret: str = TEST_JWT_SECRET) -> str:
        payload = {
            "sub": user_id,
            "username": f"user-{user_id}",
            "role": role,
            "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
        }
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make_token


@pytest.fixture
def auth_headers(make_token) -> Callable[..., dict[str, str]]:
    """Factory fixture for Authorization headers."""

    def _auth_headers(user_id: str, role: str = "user", ip: str | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {make_token(user_id, role)}"}
        if ip:
            headers["X-Forwarded-For"] = ip
        return headers

    return _auth_headers


@pytest.fixture
def admin_headers(auth_headers) -> dict[str, str]:
    return auth_headers("admin-1", role="admin", ip="10.0.0.1")


# --- Service Fixtures ---


@pytest.fixture
def rule_store(data_dir: Path) -> RateRuleStore:
    return RateRuleStore(
        JsonFileStore(data_dir / RATE_RULES_FILE),
        default_rule=RateRule(max_requests=100, window_ms=900_000),
    )


@pytest.fixture
def rate_limiter(rule_store: RateRuleStore) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(rule_store)


@pytest.fixture
def block_store(data_dir: Path) -> BlockStore:
    return BlockStore(JsonFileStore(data_dir / BLOCKS_FILE))


@pytest.fixture
def make_tracker(data_dir: Path) -> Callable[..., SuspiciousActivityTracker]:
    """Factory fixture for trackers sharing the test data directory."""

    def _make_tracker(**thresholds) -> SuspiciousActivityTracker:
        return SuspiciousActivityTracker(
            JsonFileStore(data_dir / FAILURES_FILE),
            JsonFileStore(data_dir / FLAGS_FILE),
            BlockStore(JsonFileStore(data_dir / BLOCKS_FILE)),
            **thresholds,
        )

    return _make_tracker


@pytest.fixture
def tracker(make_tracker) -> SuspiciousActivityTracker:
    return make_tracker()


# --- Utility Fixtures ---


@pytest.fixture
def frozen_time():
    """
    Fixture for time-based testing using freezegun.

    Usage:
        with frozen_time("2026-02-01 12:00:00") as frozen:
            frozen.tick(0.5)
    """
    from freezegun import freeze_time

    return freeze_time
