"""Validation policy and result types."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from edge_telemetry_service.domain.dto import TelemetryBatchDTO
from edge_telemetry_service.domain.enums import ValidationWarningKind


@dataclass(frozen=True, slots=True)
class Policy:
    """Process-wide validation limits, built once at startup."""

    prometheus_whitelist: frozenset[str]
    max_otel_batch_bytes: int
    max_events_count: int


@dataclass(frozen=True, slots=True)
class ValidationWarning:
    kind: ValidationWarningKind
    message: str
    field: str | None = None
    value: Any = None


@dataclass(frozen=True, slots=True)
class ValidationStatistics:
    original_otel_metrics: int = 0
    original_events: int = 0
    original_prometheus_metrics: int = 0
    validated_otel_metrics: int = 0
    validated_events: int = 0
    validated_prometheus_metrics: int = 0
    dropped_prometheus_metrics: int = 0
    truncated_otel: bool = False
    truncated_events: bool = False

    @property
    def validated_metrics_total(self) -> int:
        return self.validated_otel_metrics + self.validated_events + self.validated_prometheus_metrics


@dataclass(frozen=True, slots=True)
class ValidationOutcome:
    """Result of validating one batch. Content problems are warnings, never failures."""

    sanitized_batch: TelemetryBatchDTO
    statistics: ValidationStatistics
    warnings: tuple[ValidationWarning, ...] = ()
    is_valid: bool = True

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
