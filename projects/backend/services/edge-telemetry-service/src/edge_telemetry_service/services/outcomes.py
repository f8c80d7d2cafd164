"""Counters emitted as a side effect of validation outcomes."""
from __future__ import annotations

from typing import Mapping, Protocol

from opentelemetry import metrics

from edge_telemetry_service.domain.enums import ValidationWarningKind


class OutcomeRecorder(Protocol):
    """Receives one notification per validation warning.

    ``sizes`` carries the numbers relevant to the warning kind:
    ``dropped_count`` for whitelist drops, ``original_size`` and
    ``truncated_size`` for truncations.
    """

    def record(
        self,
        device_id: str,
        kind: ValidationWarningKind,
        sizes: Mapping[str, int],
    ) -> None: ...


class OtelOutcomeRecorder:
    """Records validation outcomes as OpenTelemetry counters.

    Uses the global meter provider unless one is passed in, so metrics are
    exported wherever ``setup_otel`` points them (no-op when export is off).
    """

    def __init__(self, meter_provider: metrics.MeterProvider | None = None) -> None:
        meter = metrics.get_meter(__name__, meter_provider=meter_provider)
        self._warnings = meter.create_counter(
            "telemetry_validation_warnings_total",
            unit="1",
            description="Total number of validation warnings by type",
        )
        self._prometheus_dropped = meter.create_counter(
            "telemetry_prometheus_metrics_dropped_total",
            unit="1",
            description="Prometheus metrics dropped by whitelist filtering",
        )
        self._otel_truncations = meter.create_counter(
            "telemetry_otel_truncations_total",
            unit="1",
            description="OTEL batches truncated to fit the byte budget",
        )
        self._events_truncations = meter.create_counter(
            "telemetry_events_truncations_total",
            unit="1",
            description="Event arrays truncated to the count cap",
        )
        self._original_size = meter.create_histogram(
            "telemetry_truncation_original_size",
            description="Stream size before truncation (estimated bytes for OTEL, count for events)",
        )

    def record(
        self,
        device_id: str,
        kind: ValidationWarningKind,
        sizes: Mapping[str, int],
    ) -> None:
        attributes = {"device_id": device_id}
        kind_attributes = {**attributes, "type": kind.value}
        self._warnings.add(1, kind_attributes)

        if kind is ValidationWarningKind.METRIC_NOT_WHITELISTED:
            self._prometheus_dropped.add(sizes.get("dropped_count", 1), attributes)
            return

        if kind is ValidationWarningKind.OTEL_BATCH_SIZE_EXCEEDED:
            self._otel_truncations.add(1, attributes)
        elif kind is ValidationWarningKind.EVENTS_ARRAY_SIZE_EXCEEDED:
            self._events_truncations.add(1, attributes)

        original_size = sizes.get("original_size")
        if original_size is not None:
            self._original_size.record(original_size, kind_attributes)
