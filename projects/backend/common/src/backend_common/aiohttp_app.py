"""Shared aiohttp application helpers."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Literal, Protocol

from aiohttp import web
from aiohttp_cors import CorsConfig, ResourceOptions, setup as cors_setup

from backend_common.middleware.trace import create_trace_middleware

# aiohttp_cors expects a sequence of strings (or "*"), NOT a comma-separated string.
_ALLOWED_HEADERS = (
    "Accept",
    "Accept-Language",
    "Content-Language",
    "Content-Type",
    "X-API-Key",
    "X-Trace-Id",
    "X-Request-Id",
)

_ALLOWED_METHODS = (
    "GET",
    "HEAD",
    "POST",
    "OPTIONS",
)

_EXPOSED_HEADERS = (
    "X-Trace-Id",
    "X-Request-Id",
)


class SettingsProtocol(Protocol):
    """Protocol for settings objects used by the app helpers."""

    app_name: str
    env: Literal["development", "staging", "production"]
    cors_allowed_origins: list[str]


def create_base_app(
    settings: SettingsProtocol,
    *,
    middlewares: tuple[Any, ...] = (),
) -> tuple[web.Application, CorsConfig]:
    """Create a base aiohttp app with tracing middleware and CORS configured.

    Extra ``middlewares`` run after the trace middleware, so they see the
    bound trace context.
    """
    app = web.Application()

    app.middlewares.append(create_trace_middleware(settings.app_name))
    app.middlewares.extend(middlewares)

    cors = cors_setup(
        app,
        defaults={
            origin: ResourceOptions(
                allow_credentials=True,
                expose_headers=_EXPOSED_HEADERS,
                allow_headers=_ALLOWED_HEADERS,
                allow_methods=_ALLOWED_METHODS,
            )
            for origin in settings.cors_allowed_origins
        },
    )

    return app, cors


def add_healthcheck(app: web.Application, settings: SettingsProtocol) -> None:
    """Register a standard liveness endpoint."""

    async def healthcheck(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "service": settings.app_name, "env": settings.env})

    app.router.add_get("/health", healthcheck)


def add_cors_to_routes(app: web.Application, cors: CorsConfig) -> None:
    """Apply CORS configuration to all routes in the app."""
    for route in list(app.router.routes()):
        cors.add(route)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def error_body(
    error: str,
    message: str,
    *,
    path: str | None = None,
    details: list[str] | None = None,
) -> dict[str, Any]:
    """Build the JSON error document returned by every failing endpoint."""
    return {
        "error": error,
        "message": message,
        "timestamp": _utcnow_iso(),
        "path": path,
        "details": details,
    }


def json_error(
    exc_cls: type[web.HTTPException],
    error: str,
    message: str,
    *,
    path: str | None = None,
    details: list[str] | None = None,
) -> web.HTTPException:
    """Instantiate an aiohttp HTTP exception carrying a JSON error body.

    Usage: ``raise json_error(web.HTTPBadRequest, "Bad Request", "...") from exc``.
    """
    body = error_body(error, message, path=path, details=details)
    return exc_cls(
        text=json.dumps(body, ensure_ascii=False),
        content_type="application/json",
    )


async def read_json(request: web.Request, *, path: str | None = None) -> dict[str, Any]:
    """Parse a JSON object body, raising a JSON ``400`` on invalid input."""
    try:
        data = await request.json()
    except ValueError as exc:
        raise json_error(web.HTTPBadRequest, "Bad Request", "Invalid JSON format", path=path) from exc
    if not isinstance(data, dict):
        raise json_error(web.HTTPBadRequest, "Bad Request", "Invalid JSON format", path=path)
    return data
