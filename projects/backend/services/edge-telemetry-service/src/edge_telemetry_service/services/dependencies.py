"""Shared dependency providers for aiohttp handlers."""
from __future__ import annotations

from aiohttp import web

from edge_telemetry_service.services.validation import TelemetryValidationService
from edge_telemetry_service.settings import Settings

VALIDATION_SERVICE_KEY = web.AppKey("validation_service", TelemetryValidationService)
SETTINGS_KEY = web.AppKey("settings", Settings)


def get_validation_service(request: web.Request) -> TelemetryValidationService:
    return request.app[VALIDATION_SERVICE_KEY]


def get_app_settings(request: web.Request) -> Settings:
    return request.app[SETTINGS_KEY]
