"""Middleware turning unhandled exceptions into JSON 500 responses."""
from __future__ import annotations

import structlog
from aiohttp import web

from backend_common.aiohttp_app import error_body

logger = structlog.get_logger(__name__)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        logger.error("Unhandled error", path=request.path, exc_info=True)
        return web.json_response(
            error_body("Internal Server Error", "An unexpected error occurred", path=request.path),
            status=500,
        )
