"""Configuration readiness endpoint."""
from __future__ import annotations

from typing import Any

import structlog
from aiohttp import web

from edge_telemetry_service.core.exceptions import ConfigurationError
from edge_telemetry_service.services.dependencies import get_app_settings
from edge_telemetry_service.settings import Settings

MIN_API_KEY_LENGTH = 10

logger = structlog.get_logger(__name__)

routes = web.RouteTableDef()


def check_configuration(settings: Settings) -> None:
    """Raise ``ConfigurationError`` describing the first problem found."""
    if not settings.prometheus_whitelist:
        raise ConfigurationError("Prometheus whitelist cannot be empty")
    if not settings.api_keys:
        raise ConfigurationError("At least one API key must be configured")
    if settings.otel_exporter_endpoint is None:
        raise ConfigurationError("OTLP collector endpoint must be configured")
    if settings.max_otel_batch_bytes <= 0:
        raise ConfigurationError("OTEL batch size must be positive")
    if settings.max_events_count <= 0:
        raise ConfigurationError("Events array size must be positive")
    if any(len(key) < MIN_API_KEY_LENGTH for key in settings.api_keys):
        raise ConfigurationError(f"API keys must be at least {MIN_API_KEY_LENGTH} characters long")


def configuration_details(settings: Settings) -> dict[str, Any]:
    endpoint = settings.otel_exporter_endpoint
    return {
        "prometheus_whitelist_size": len(settings.prometheus_whitelist),
        "api_keys_configured": bool(settings.api_keys),
        "collector_url": str(endpoint) if endpoint is not None else None,
    }


@routes.get("/health/config")
async def configuration_health(request: web.Request) -> web.Response:
    settings = get_app_settings(request)
    details = configuration_details(settings)
    try:
        check_configuration(settings)
    except ConfigurationError as exc:
        logger.error("Configuration health check failed", component="configuration", error=str(exc))
        return web.json_response(
            {"status": "DOWN", "details": {**details, "error": str(exc)}},
            status=503,
        )
    return web.json_response(
        {"status": "UP", "details": {**details, "configuration": "All configurations are valid"}}
    )
