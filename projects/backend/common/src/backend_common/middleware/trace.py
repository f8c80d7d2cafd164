"""Middleware for trace_id and request_id logging."""
from __future__ import annotations

import time
from typing import Any, Iterable, Mapping
from uuid import UUID, uuid4

import structlog
from aiohttp import web
from yarl import URL

TRACE_ID_HEADER = "X-Trace-Id"
REQUEST_ID_HEADER = "X-Request-Id"

REDACTED = "***"

logger = structlog.get_logger(__name__)

# Headers that must never reach the logs
SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "x-auth-token",
}

# Query parameters that carry credentials
SENSITIVE_QUERY_PARAMS = {"apikey", "api_key", "token"}


def is_valid_uuid(value: str) -> bool:
    """Check if string is a valid UUID."""
    try:
        UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def get_safe_headers(headers: Mapping[str, Any]) -> dict[str, Any]:
    """Get headers dict with sensitive headers filtered out."""
    safe_headers: dict[str, Any] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            continue
        if hasattr(value, "__iter__") and not isinstance(value, (str, bytes)):
            values_list = list(value)
            if len(values_list) == 1:
                safe_headers[key] = values_list[0]
            elif len(values_list) > 1:
                safe_headers[key] = values_list[:3]
        else:
            safe_headers[key] = value
    return safe_headers


def redact_url(url: URL, sensitive: Iterable[str] = SENSITIVE_QUERY_PARAMS) -> str:
    """Render ``url`` with credential-bearing query values masked."""
    if not url.query:
        return str(url)
    names = {name.lower() for name in sensitive}
    query = [
        (key, REDACTED if key.lower() in names else value)
        for key, value in url.query.items()
    ]
    return str(url.with_query(query))


def create_trace_middleware(service_name: str):
    """Create trace middleware with specified service name."""

    @web.middleware
    async def trace_middleware(request: web.Request, handler):
        """Bind trace/request ids to the log context and log request/response."""
        start_time = time.monotonic()

        trace_id = request.headers.get(TRACE_ID_HEADER)
        if not trace_id or not is_valid_uuid(trace_id):
            trace_id = str(uuid4())

        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not request_id or not is_valid_uuid(request_id):
            request_id = str(uuid4())

        request["trace_id"] = trace_id
        request["request_id"] = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            trace_id=trace_id,
            request_id=request_id,
            service=service_name,
            method=request.method,
            path=request.path,
        )

        url = redact_url(request.url)
        request_info: dict[str, Any] = {
            "url": url,
            "remote": request.remote,
            "headers": get_safe_headers(request.headers),
        }
        if request.content_length:
            request_info["content_length"] = request.content_length

        logger.info("Incoming request", **request_info)

        try:
            response = await handler(request)

            duration_ms = (time.monotonic() - start_time) * 1000
            response_info: dict[str, Any] = {
                "url": url,
                "status_code": response.status,
                "duration_ms": round(duration_ms, 2),
            }
            content_length = response.headers.get("Content-Length")
            if content_length and content_length.isdigit():
                response_info["content_length"] = int(content_length)

            if response.status >= 400:
                logger.warning("Request completed with error status", **response_info)
            else:
                logger.info("Request completed", **response_info)

            response.headers[TRACE_ID_HEADER] = trace_id
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except web.HTTPException as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.warning(
                "Request failed with HTTP exception",
                url=url,
                status_code=e.status_code,
                duration_ms=round(duration_ms, 2),
                error=e.reason,
            )
            e.headers[TRACE_ID_HEADER] = trace_id
            e.headers[REQUEST_ID_HEADER] = request_id
            raise
        except Exception as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.error(
                "Request failed with exception",
                url=url,
                duration_ms=round(duration_ms, 2),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise
        finally:
            structlog.contextvars.clear_contextvars()

    return trace_middleware
