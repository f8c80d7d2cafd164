"""Pytest configuration and fixtures."""
from __future__ import annotations

import pytest

from edge_telemetry_service.domain.models import Policy
from edge_telemetry_service.main import create_app
from edge_telemetry_service.settings import settings

API_KEY = "test-api-key-0001"
WHITELIST = frozenset({"cpu_usage", "memory_usage", "temperature"})


@pytest.fixture
def policy() -> Policy:
    return Policy(
        prometheus_whitelist=WHITELIST,
        max_otel_batch_bytes=1000,
        max_events_count=5,
    )


@pytest.fixture
def service_settings(monkeypatch):
    """Process settings tuned to the same limits as the ``policy`` fixture."""
    monkeypatch.setattr(settings, "api_keys", frozenset({API_KEY}))
    monkeypatch.setattr(settings, "prometheus_whitelist", WHITELIST)
    monkeypatch.setattr(settings, "max_otel_batch_bytes", 1000)
    monkeypatch.setattr(settings, "max_events_count", 5)
    monkeypatch.setattr(settings, "otel_exporter_endpoint", None)
    return settings


@pytest.fixture
def api_headers() -> dict[str, str]:
    return {"X-API-Key": API_KEY}


@pytest.fixture
async def service_client(aiohttp_client, service_settings):
    """Client for calling the service API."""
    app = create_app()
    return await aiohttp_client(app)
