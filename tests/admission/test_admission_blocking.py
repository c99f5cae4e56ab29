"""HTTP tests for abuse detection, failure tracking and the block gate."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from gatekeeper.config import Settings
from gatekeeper.main import create_app
from gatekeeper.models.suspicious import FlagReason


class TestAbuseDetection:
    """Tests for the abusive-content stage."""

    async def test_abusive_body_is_forbidden(self, async_client: AsyncClient, auth_headers):
        response = await async_client.post(
            "/api/submit",
            json={"message": "buy spam now"},
            headers=auth_headers("u1", ip="10.1.0.1"),
        )
        assert response.status_code == 403
        assert response.json() == {
            "error": "Forbidden",
            "message": "Abusive content detected. Request blocked.",
        }

    async def test_abusive_query_is_forbidden(self, async_client: AsyncClient):
        response = await async_client.get(
            "/health", params={"q": "hate"}, headers={"X-Forwarded-For": "10.1.0.2"}
        )
        assert response.status_code == 403

    async def test_abusive_custom_header_is_forbidden(self, async_client: AsyncClient):
        response = await async_client.get(
            "/health",
            headers={"X-Forwarded-For": "10.1.0.3", "X-Custom-Data": "total abuse"},
        )
        assert response.status_code == 403

    async def test_abusive_requests_are_not_counted_as_failures(
        self, async_client: AsyncClient, services
    ):
        await async_client.get("/health", params={"q": "spam"}, headers={"X-Forwarded-For": "10.1.0.4"})
        assert services.tracker.failure_count("10.1.0.4") == 0


class TestFailureBlocking:
    """Tests for repeated-failure escalation through HTTP responses."""

    async def test_five_failures_block_user(self, async_client: AsyncClient, auth_headers, services):
        """The 6th request from u1 after five failures is blocked with the flag reason."""
        headers = auth_headers("u1", ip="10.2.0.1")
        for _ in range(5):
            response = await async_client.get("/does-not-exist", headers=headers)
            assert response.status_code == 404

        assert services.tracker.get_flag_info("10.2.0.1", "u1").reason is FlagReason.REPEATED_FAILURES

        response = await async_client.get("/health", headers=headers)
        assert response.status_code == 403
        assert response.json() == {
            "error": "Access Blocked",
            "message": "Your account/IP has been blocked due to suspicious activity. Contact admin.",
            "reason": "repeated_failures",
        }

    async def test_block_follows_user_across_ips(self, async_client: AsyncClient, auth_headers):
        for _ in range(5):
            await async_client.get("/does-not-exist", headers=auth_headers("u2", ip="10.2.0.2"))

        response = await async_client.get("/health", headers=auth_headers("u2", ip="10.2.0.3"))
        assert response.status_code == 403

    async def test_anonymous_failures_block_ip(self, async_client: AsyncClient):
        headers = {"X-Forwarded-For": "10.2.0.4"}
        for _ in range(5):
            await async_client.get("/does-not-exist", headers=headers)

        response = await async_client.get("/health", headers=headers)
        assert response.status_code == 403
        assert response.json()["reason"] == "repeated_failures"

    async def test_blocked_responses_count_as_failures(self, async_client: AsyncClient, services):
        services.tracker.flag("10.2.0.5", FlagReason.TRAFFIC_SPIKE)

        await async_client.get("/health", headers={"X-Forwarded-For": "10.2.0.5"})
        assert services.tracker.failure_count("10.2.0.5") == 1

    async def test_rate_limit_denials_are_checked_before_blocks(
        self, async_client: AsyncClient, services
    ):
        services.rules.set_rule("/health", 1, 60_000)
        services.tracker.flag("10.2.0.6", FlagReason.TRAFFIC_SPIKE)
        headers = {"X-Forwarded-For": "10.2.0.6"}

        assert (await async_client.get("/health", headers=headers)).status_code == 403
        assert (await async_client.get("/health", headers=headers)).status_code == 429


@pytest.fixture
def spike_app(settings: Settings) -> FastAPI:
    """App that treats 5 requests in the spike window as a spike."""
    return create_app(settings.model_copy(update={"spike_threshold": 5}))


@pytest_asyncio.fixture
async def spike_client(spike_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=spike_app), base_url="http://test") as client:
        yield client


class TestTrafficSpike:
    """Tests for spike escalation through HTTP requests."""

    async def test_spike_blocks_ip_without_failures(self, spike_client: AsyncClient, spike_app: FastAPI):
        headers = {"X-Forwarded-For": "10.3.0.1"}
        statuses = [(await spike_client.get("/health", headers=headers)).status_code for _ in range(5)]

        assert statuses == [200, 200, 200, 200, 403]
        tracker = spike_app.state.services.tracker
        assert tracker.get_block_info("10.3.0.1").reason is FlagReason.TRAFFIC_SPIKE
        assert tracker.failure_count("10.3.0.1") == 1

    async def test_other_ips_unaffected(self, spike_client: AsyncClient):
        for _ in range(5):
            await spike_client.get("/health", headers={"X-Forwarded-For": "10.3.0.2"})

        response = await spike_client.get("/health", headers={"X-Forwarded-For": "10.3.0.3"})
        assert response.status_code == 200
