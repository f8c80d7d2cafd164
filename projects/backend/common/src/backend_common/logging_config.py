"""Structured single-line logging (key=value) for backend services."""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

_KEY_ORDER = ["timestamp", "level", "logger", "event", "message"]


def _sanitize_string(value: str) -> str:
    """Escape control characters so the log entry stays on a single line."""
    return (
        value.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


def _sanitize(value: Any) -> Any:
    if isinstance(value, str):
        return _sanitize_string(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize(item) for item in value]
    if isinstance(value, dict):
        return {k: _sanitize(v) for k, v in value.items()}
    return value


def replace_newlines_processor(logger, method_name, event_dict):
    """
    Escape newlines in every string value, including nested lists and dicts.

    Must run after ``format_exc_info`` so formatted tracebacks are covered too.
    Device-supplied values (metric names, event messages) end up in log
    entries, so they cannot be trusted to be single-line.
    """
    for key, value in event_dict.items():
        event_dict[key] = _sanitize(value)
    return event_dict


class SingleLineFormatter(logging.Formatter):
    """Formatter that ensures output is always on a single line."""

    def format(self, record):
        message = super().format(record)
        return message.replace("\n", "\\n").replace("\r", "\\r")


def configure_logging(level: str | int = logging.INFO) -> None:
    """Configure structlog for key=value output suitable for Grafana/Loki/Alloy.

    Example line::

        timestamp=2024-01-01T12:00:00Z level=warning logger=edge_telemetry_service.services.validation
        event='Dropped non-whitelisted Prometheus metric' device_id=esp32-01 metric_name=custom
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(SingleLineFormatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)
    root_logger.propagate = False

    # aiohttp access logs go through the root handler
    aiohttp_logger = logging.getLogger("aiohttp.access")
    aiohttp_logger.setLevel(logging.INFO)
    aiohttp_logger.propagate = True
    aiohttp_logger.handlers = []

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            replace_newlines_processor,
            structlog.processors.KeyValueRenderer(key_order=_KEY_ORDER, drop_missing=True),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
