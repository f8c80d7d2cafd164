"""Closed value sets used by telemetry payloads and validation results."""
from __future__ import annotations

from enum import Enum


class EventSeverity(str, Enum):
    """Severity of a device event."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"


class PrometheusMetricType(str, Enum):
    """Prometheus exposition type tag."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"


class ValidationWarningKind(str, Enum):
    """Non-fatal violations the validation engine reports."""

    METRIC_NOT_WHITELISTED = "METRIC_NOT_WHITELISTED"
    OTEL_BATCH_SIZE_EXCEEDED = "OTEL_BATCH_SIZE_EXCEEDED"
    EVENTS_ARRAY_SIZE_EXCEEDED = "EVENTS_ARRAY_SIZE_EXCEEDED"
