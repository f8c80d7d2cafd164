"""API-key authentication for device endpoints."""
from __future__ import annotations

from typing import Iterable

import structlog
from aiohttp import web

from backend_common.aiohttp_app import json_error

from edge_telemetry_service.core.exceptions import UnauthorizedError

API_KEY_HEADER = "X-API-Key"
API_KEY_PARAM = "apiKey"

logger = structlog.get_logger(__name__)


def extract_api_key(request: web.Request) -> str | None:
    """Header first, then query parameter."""
    api_key = request.headers.get(API_KEY_HEADER) or request.rel_url.query.get(API_KEY_PARAM)
    if api_key is None:
        return None
    api_key = api_key.strip()
    return api_key or None


def authenticate(request: web.Request, api_keys: frozenset[str]) -> str:
    api_key = extract_api_key(request)
    if api_key is None:
        raise UnauthorizedError("API key is required")
    if api_key not in api_keys:
        raise UnauthorizedError("Invalid API key")
    return api_key


def create_api_key_middleware(api_keys: frozenset[str], protected_paths: Iterable[str]):
    """Reject requests to ``protected_paths`` that lack a configured API key."""
    protected = frozenset(protected_paths)

    @web.middleware
    async def api_key_middleware(request: web.Request, handler):
        if request.path not in protected or request.method == "OPTIONS":
            return await handler(request)
        try:
            authenticate(request, api_keys)
        except UnauthorizedError as exc:
            logger.warning("Rejected unauthenticated request", reason=str(exc))
            raise json_error(web.HTTPUnauthorized, "Unauthorized", str(exc), path=request.path) from exc
        return await handler(request)

    return api_key_middleware
