"""Shared fixtures for the SFU dashboard backend tests."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from sfudash.api.app import app
from sfudash.api.ratelimit import limiter
from sfudash.core.bus import FRONT_TOPIC, bus
from sfudash.core.policy import default_policy


@pytest.fixture(autouse=True)
def _reset_bus():
    """Every test starts and ends with an empty process-wide bus."""
    bus.clear()
    yield
    bus.clear()


@pytest.fixture
def published():
    """Envelopes published on the ``front`` topic during the test."""
    received = []
    subscription = bus.subscribe(FRONT_TOPIC, received.append)
    yield received
    bus.unsubscribe(FRONT_TOPIC, subscription)


@pytest_asyncio.fixture
async def client():
    """HTTP test client against the application."""
    app.state.auth_policy = default_policy()

    # Disable rate limiter for tests
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.auth_policy = default_policy()
