"""OpenTelemetry outcome recorder tests."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from edge_telemetry_service.domain.dto import PrometheusMetricDTO, TelemetryBatchDTO
from edge_telemetry_service.domain.enums import ValidationWarningKind
from edge_telemetry_service.services.outcomes import OtelOutcomeRecorder
from edge_telemetry_service.services.validation import validate_batch


@pytest.fixture
def reader() -> InMemoryMetricReader:
    return InMemoryMetricReader()


@pytest.fixture
def recorder(reader) -> OtelOutcomeRecorder:
    return OtelOutcomeRecorder(meter_provider=MeterProvider(metric_readers=[reader]))


def _points(reader: InMemoryMetricReader, name: str) -> list:
    data = reader.get_metrics_data()
    if data is None:
        return []
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                if metric.name == name:
                    return list(metric.data.data_points)
    return []


def test_whitelist_drop_increments_counters(recorder, reader):
    recorder.record("esp32-01", ValidationWarningKind.METRIC_NOT_WHITELISTED, {"dropped_count": 1})
    recorder.record("esp32-01", ValidationWarningKind.METRIC_NOT_WHITELISTED, {"dropped_count": 1})

    dropped = _points(reader, "telemetry_prometheus_metrics_dropped_total")
    assert [(dict(p.attributes), p.value) for p in dropped] == [({"device_id": "esp32-01"}, 2)]

    warnings = _points(reader, "telemetry_validation_warnings_total")
    assert [(dict(p.attributes), p.value) for p in warnings] == [
        ({"device_id": "esp32-01", "type": "METRIC_NOT_WHITELISTED"}, 2)
    ]


def test_truncations_are_counted_per_stream(recorder, reader):
    recorder.record(
        "esp32-02",
        ValidationWarningKind.OTEL_BATCH_SIZE_EXCEEDED,
        {"original_size": 5000, "truncated_size": 8},
    )
    recorder.record(
        "esp32-02",
        ValidationWarningKind.EVENTS_ARRAY_SIZE_EXCEEDED,
        {"original_size": 12, "truncated_size": 5},
    )

    otel = _points(reader, "telemetry_otel_truncations_total")
    events = _points(reader, "telemetry_events_truncations_total")
    assert [p.value for p in otel] == [1]
    assert [p.value for p in events] == [1]

    sizes = {
        dict(p.attributes)["type"]: p.sum
        for p in _points(reader, "telemetry_truncation_original_size")
    }
    assert sizes == {"OTEL_BATCH_SIZE_EXCEEDED": 5000, "EVENTS_ARRAY_SIZE_EXCEEDED": 12}


def test_engine_feeds_recorder(recorder, reader, policy):
    batch = TelemetryBatchDTO(
        device_id="esp32-03",
        timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
        prometheus_metrics=[
            PrometheusMetricDTO(name="custom_metric", value=1.0, labels={}),
            PrometheusMetricDTO(name="cpu_usage", value=1.0, labels={}),
        ],
    )

    validate_batch(batch, policy, recorder)

    dropped = _points(reader, "telemetry_prometheus_metrics_dropped_total")
    assert [(dict(p.attributes), p.value) for p in dropped] == [({"device_id": "esp32-03"}, 1)]
    assert _points(reader, "telemetry_otel_truncations_total") == []
