"""aiohttp application entrypoint."""
from __future__ import annotations

from aiohttp import web

from backend_common.aiohttp_app import add_cors_to_routes, add_healthcheck, create_base_app
from backend_common.logging_config import configure_logging
from backend_common.middleware.errors import error_middleware

from edge_telemetry_service.api.auth import create_api_key_middleware
from edge_telemetry_service.api.routes.health import routes as health_routes
from edge_telemetry_service.api.routes.telemetry import TELEMETRY_PATH, routes as telemetry_routes
from edge_telemetry_service.otel import setup_otel
from edge_telemetry_service.services.dependencies import SETTINGS_KEY, VALIDATION_SERVICE_KEY
from edge_telemetry_service.services.outcomes import OtelOutcomeRecorder
from edge_telemetry_service.services.validation import TelemetryValidationService
from edge_telemetry_service.settings import build_policy, settings

# Configure structured logging
configure_logging(settings.log_level)


def create_app() -> web.Application:
    # Policy is snapshotted here and never reloaded; a bad policy fails startup.
    policy = build_policy(settings)

    app, cors = create_base_app(
        settings,
        middlewares=(
            error_middleware,
            create_api_key_middleware(settings.api_keys, protected_paths=(TELEMETRY_PATH,)),
        ),
    )
    setup_otel(app, settings)

    app[SETTINGS_KEY] = settings
    app[VALIDATION_SERVICE_KEY] = TelemetryValidationService(policy, OtelOutcomeRecorder())

    add_healthcheck(app, settings)
    app.add_routes(health_routes)
    app.add_routes(telemetry_routes)

    add_cors_to_routes(app, cors)

    return app


def main() -> None:
    web.run_app(create_app(), host=settings.host, port=settings.port, access_log=None)


if __name__ == "__main__":
    main()
