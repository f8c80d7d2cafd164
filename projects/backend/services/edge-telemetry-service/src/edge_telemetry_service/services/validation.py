"""Batch validation and truncation engine.

Sanitizes one device batch against the process ``Policy``:

- Prometheus metrics outside the whitelist are dropped one by one;
- the OTEL stream is cut down to its most recent entries when its estimated
  size exceeds the byte budget;
- the event stream is cut down to its most recent ``max_events_count`` entries.

Every violation becomes a ``ValidationWarning`` on an otherwise successful
outcome. "Most recent" means the tail of the submitted sequence; element
timestamps are not consulted.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Mapping, Sequence, TypeVar

import structlog

from edge_telemetry_service.core.exceptions import InvalidPolicyError
from edge_telemetry_service.domain.dto import (
    EventDTO,
    OtelMetricDTO,
    PrometheusMetricDTO,
    TelemetryBatchDTO,
)
from edge_telemetry_service.domain.enums import ValidationWarningKind
from edge_telemetry_service.domain.models import (
    Policy,
    ValidationOutcome,
    ValidationStatistics,
    ValidationWarning,
)
from edge_telemetry_service.services.outcomes import OutcomeRecorder

logger = structlog.get_logger(__name__)

# Size heuristic: fixed widths for the numeric value and the timestamp.
OTEL_VALUE_WIDTH = 8
OTEL_TIMESTAMP_WIDTH = 20
FALLBACK_AVG_METRIC_SIZE = 100

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class StreamResult(Generic[T]):
    """Filtered/truncated version of one stream. ``items`` is None when the stream was absent."""

    items: list[T] | None
    warnings: tuple[ValidationWarning, ...] = ()
    dropped: int = 0
    truncated: bool = False


def _length(items: Sequence[Any] | None) -> int:
    return len(items) if items is not None else 0


def estimate_otel_metric_size(metric: OtelMetricDTO) -> int:
    labels_size = sum(len(key) + len(value) for key, value in metric.labels.items())
    return len(metric.name) + OTEL_VALUE_WIDTH + labels_size + OTEL_TIMESTAMP_WIDTH


def estimate_otel_size(metrics: Sequence[OtelMetricDTO]) -> int:
    """Approximate serialized size of an OTEL stream, in bytes."""
    return sum(estimate_otel_metric_size(metric) for metric in metrics)


def filter_prometheus_metrics(
    metrics: Sequence[PrometheusMetricDTO] | None,
    whitelist: frozenset[str] | set[str],
) -> StreamResult[PrometheusMetricDTO]:
    """Keep whitelisted metrics in submission order; one warning per dropped metric."""
    if metrics is None:
        return StreamResult(None)

    kept: list[PrometheusMetricDTO] = []
    warnings: list[ValidationWarning] = []
    for metric in metrics:
        if metric.name in whitelist:
            kept.append(metric)
            continue
        warnings.append(
            ValidationWarning(
                kind=ValidationWarningKind.METRIC_NOT_WHITELISTED,
                message=f"Prometheus metric '{metric.name}' not in whitelist",
                field="metrics[].name",
                value=metric.name,
            )
        )
        logger.warning("Dropped non-whitelisted Prometheus metric", metric_name=metric.name)

    return StreamResult(kept, tuple(warnings), dropped=len(warnings))


def _keep_tail(items: Sequence[T], keep: int) -> list[T]:
    if keep <= 0:
        return []
    return list(items[len(items) - min(keep, len(items)):])


def truncate_otel_metrics(
    metrics: Sequence[OtelMetricDTO] | None,
    max_bytes: int,
) -> StreamResult[OtelMetricDTO]:
    """Drop the oldest OTEL metrics until the estimated size fits ``max_bytes``.

    Assumes a uniform per-metric cost, so the retained tail may still exceed
    the budget when metric sizes vary a lot. An over-budget stream always
    yields a warning, even when the computed keep count covers every metric.
    """
    if metrics is None:
        return StreamResult(None)
    if not metrics:
        return StreamResult(list(metrics))

    total_size = estimate_otel_size(metrics)
    if total_size <= max_bytes:
        return StreamResult(list(metrics))

    count = len(metrics)
    avg_size = total_size // count if count else FALLBACK_AVG_METRIC_SIZE
    kept = _keep_tail(metrics, max_bytes // max(avg_size, 1))

    logger.warning(
        "OTEL batch size exceeded",
        estimated_size=total_size,
        max_size=max_bytes,
        kept_metrics=len(kept),
    )
    warning = ValidationWarning(
        kind=ValidationWarningKind.OTEL_BATCH_SIZE_EXCEEDED,
        message=(
            f"OTEL batch size exceeded limit ({total_size} > {max_bytes}), "
            f"truncated to {len(kept)} metrics"
        ),
        field="otel",
        value={"total_size": total_size, "kept_count": len(kept)},
    )
    return StreamResult(kept, (warning,), truncated=len(kept) < count)


def truncate_events(events: Sequence[EventDTO] | None, max_count: int) -> StreamResult[EventDTO]:
    """Keep the most recent ``max_count`` events."""
    if events is None:
        return StreamResult(None)
    if not events or len(events) <= max_count:
        return StreamResult(list(events))

    kept = _keep_tail(events, max_count)
    logger.warning(
        "Events array size exceeded",
        events_count=len(events),
        max_count=max_count,
        kept_events=len(kept),
    )
    warning = ValidationWarning(
        kind=ValidationWarningKind.EVENTS_ARRAY_SIZE_EXCEEDED,
        message=(
            f"Events array size exceeded limit ({len(events)} > {max_count}), "
            f"truncated to {len(kept)} events"
        ),
        field="events",
        value={"original_count": len(events), "kept_count": len(kept)},
    )
    return StreamResult(kept, (warning,), truncated=True)


def _outcome_sizes(warning: ValidationWarning) -> Mapping[str, int]:
    if warning.kind is ValidationWarningKind.OTEL_BATCH_SIZE_EXCEEDED:
        return {"original_size": warning.value["total_size"], "truncated_size": warning.value["kept_count"]}
    if warning.kind is ValidationWarningKind.EVENTS_ARRAY_SIZE_EXCEEDED:
        return {"original_size": warning.value["original_count"], "truncated_size": warning.value["kept_count"]}
    return {"dropped_count": 1}


def _notify(
    recorder: OutcomeRecorder,
    device_id: str,
    warnings: Sequence[ValidationWarning],
) -> None:
    for warning in warnings:
        try:
            recorder.record(device_id, warning.kind, _outcome_sizes(warning))
        except Exception:
            # Recording is fire-and-forget; the outcome stands regardless.
            logger.warning("Outcome recorder failed", warning_kind=warning.kind.value, exc_info=True)


def validate_batch(
    batch: TelemetryBatchDTO,
    policy: Policy,
    recorder: OutcomeRecorder | None = None,
) -> ValidationOutcome:
    """Sanitize ``batch`` against ``policy``. Never fails on batch content."""
    if policy is None:
        raise InvalidPolicyError("Validation policy is not configured")

    with structlog.contextvars.bound_contextvars(device_id=batch.device_id):
        outcome = _validate(batch, policy)
        if recorder is not None and outcome.warnings:
            _notify(recorder, batch.device_id, outcome.warnings)
    return outcome


def _validate(batch: TelemetryBatchDTO, policy: Policy) -> ValidationOutcome:
    prometheus = filter_prometheus_metrics(batch.prometheus_metrics, policy.prometheus_whitelist)
    otel = truncate_otel_metrics(batch.otel_metrics, policy.max_otel_batch_bytes)
    events = truncate_events(batch.events, policy.max_events_count)

    sanitized = batch.model_copy(
        update={
            "otel_metrics": otel.items,
            "events": events.items,
            "prometheus_metrics": prometheus.items,
        }
    )
    statistics = ValidationStatistics(
        original_otel_metrics=_length(batch.otel_metrics),
        original_events=_length(batch.events),
        original_prometheus_metrics=_length(batch.prometheus_metrics),
        validated_otel_metrics=_length(otel.items),
        validated_events=_length(events.items),
        validated_prometheus_metrics=_length(prometheus.items),
        dropped_prometheus_metrics=prometheus.dropped,
        truncated_otel=otel.truncated,
        truncated_events=events.truncated,
    )
    warnings = prometheus.warnings + otel.warnings + events.warnings

    logger.info(
        "Validation completed",
        otel=f"{statistics.validated_otel_metrics}/{statistics.original_otel_metrics}",
        events=f"{statistics.validated_events}/{statistics.original_events}",
        prometheus=f"{statistics.validated_prometheus_metrics}/{statistics.original_prometheus_metrics}",
        dropped=statistics.dropped_prometheus_metrics,
        truncated_otel=statistics.truncated_otel,
        truncated_events=statistics.truncated_events,
        warnings=len(warnings),
    )
    return ValidationOutcome(
        sanitized_batch=sanitized,
        statistics=statistics,
        warnings=warnings,
    )


class TelemetryValidationService:
    """Binds the process policy and outcome recorder for request handlers."""

    def __init__(self, policy: Policy, recorder: OutcomeRecorder | None = None):
        if policy is None:
            raise InvalidPolicyError("Validation policy is not configured")
        self._policy = policy
        self._recorder = recorder

    @property
    def policy(self) -> Policy:
        return self._policy

    def validate(self, batch: TelemetryBatchDTO) -> ValidationOutcome:
        return validate_batch(batch, self._policy, self._recorder)
