"""Tests for the keeper health endpoints."""

import json
import time

import pytest
from aiohttp.test_utils import make_mocked_request

from agentpay.services.keeper.executor import KeeperExecutor
from agentpay.services.keeper.scheduler import KeeperScheduler
from jobs import health
from tests.fakes import FakeLedger


@pytest.fixture
def keeper(test_settings):
    ledger = FakeLedger()
    scheduler = KeeperScheduler(ledger, KeeperExecutor(ledger), test_settings)
    health.set_keeper(scheduler)
    yield scheduler
    health.set_keeper(None)


def body(response):
    return json.loads(response.text)


class TestHealthHandlers:
    """Status codes reflect keeper state."""

    @pytest.mark.asyncio
    async def test_unregistered_keeper_is_unhealthy(self):
        health.set_keeper(None)

        response = await health.health_handler(make_mocked_request("GET", "/health"))

        assert response.status == 503
        assert body(response)["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_stopped_keeper(self, keeper):
        response = await health.health_handler(make_mocked_request("GET", "/health"))

        assert response.status == 503
        assert body(response)["status"] == "stopped"

    @pytest.mark.asyncio
    async def test_running_keeper_is_healthy(self, keeper):
        keeper._running = True
        keeper.tick_count = 3
        keeper.last_tick_at = time.time()

        response = await health.health_handler(make_mocked_request("GET", "/health"))

        assert response.status == 200
        payload = body(response)
        assert payload["status"] == "healthy"
        assert payload["tick_count"] == 3

    @pytest.mark.asyncio
    async def test_stale_keeper(self, keeper):
        keeper._running = True
        keeper.last_tick_at = time.time() - 3600

        response = await health.health_handler(make_mocked_request("GET", "/health"))

        assert response.status == 503
        assert body(response)["status"] == "stale"

    @pytest.mark.asyncio
    async def test_readiness_follows_loop(self, keeper):
        response = await health.readiness_handler(make_mocked_request("GET", "/readiness"))
        assert response.status == 503

        keeper._running = True
        response = await health.readiness_handler(make_mocked_request("GET", "/readiness"))
        assert response.status == 200
        assert body(response)["ready"] is True

    @pytest.mark.asyncio
    async def test_liveness_always_ok(self):
        response = await health.liveness_handler(make_mocked_request("GET", "/liveness"))

        assert response.status == 200
        assert body(response)["alive"] is True
