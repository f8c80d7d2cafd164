from __future__ import annotations

import pytest

TS = "2026-01-01T00:00:00Z"


def _payload(**overrides) -> dict:
    payload = {
        "deviceId": "esp32-01",
        "timestamp": TS,
        "otel": [{"name": "cpu", "value": 12.5, "labels": {"host": "a"}, "timestamp": TS}],
        "events": [{"type": "boot", "message": "Device booted", "severity": "INFO", "timestamp": TS}],
        "metrics": [{"name": "cpu_usage", "value": 50.0, "labels": {}, "type": "gauge"}],
    }
    payload.update(overrides)
    return payload


def _events(count: int) -> list[dict]:
    return [
        {"type": f"event_{n}", "message": f"Message {n}", "severity": "INFO", "timestamp": TS}
        for n in range(1, count + 1)
    ]


async def test_ingest_happy_path(service_client, api_headers):
    resp = await service_client.post("/api/v1/telemetry", json=_payload(), headers=api_headers)

    assert resp.status == 200
    body = await resp.json()
    assert body == {
        "status": "accepted",
        "validatedMetrics": 3,
        "truncatedOtel": False,
        "truncatedEvents": False,
        "droppedPrometheusMetrics": 0,
        "warnings": None,
    }
    assert resp.headers.get("X-Trace-Id")
    assert resp.headers.get("X-Request-Id")


async def test_ingest_with_warnings(service_client, api_headers):
    payload = _payload(
        metrics=[
            {"name": "cpu_usage", "value": 50.0, "labels": {}},
            {"name": "custom_metric", "value": 100.0, "labels": {}},
        ],
        events=_events(10),
    )

    resp = await service_client.post("/api/v1/telemetry", json=payload, headers=api_headers)

    assert resp.status == 200
    body = await resp.json()
    assert body["status"] == "accepted_with_warnings"
    assert body["droppedPrometheusMetrics"] == 1
    assert body["truncatedEvents"] is True
    assert body["truncatedOtel"] is False
    # 1 otel + 5 events + 1 prometheus
    assert body["validatedMetrics"] == 7
    assert body["warnings"][0] == "Prometheus metric 'custom_metric' not in whitelist"
    assert len(body["warnings"]) == 2


async def test_ingest_without_optional_streams(service_client, api_headers):
    resp = await service_client.post(
        "/api/v1/telemetry",
        json={"deviceId": "esp32-01", "timestamp": TS},
        headers=api_headers,
    )

    assert resp.status == 200
    body = await resp.json()
    assert body["status"] == "accepted"
    assert body["validatedMetrics"] == 0


async def test_api_key_from_query_param(service_client, api_headers):
    resp = await service_client.post(
        "/api/v1/telemetry",
        json=_payload(),
        params={"apiKey": api_headers["X-API-Key"]},
    )

    assert resp.status == 200


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"X-API-Key": "wrong-key-123456"},
        {"X-API-Key": ""},
    ],
)
async def test_ingest_requires_valid_api_key(service_client, headers):
    resp = await service_client.post("/api/v1/telemetry", json=_payload(), headers=headers)

    assert resp.status == 401
    body = await resp.json()
    assert body["error"] == "Unauthorized"
    assert body["path"] == "/api/v1/telemetry"


async def test_ingest_malformed_json(service_client, api_headers):
    resp = await service_client.post(
        "/api/v1/telemetry",
        data='{"invalid": json}',
        headers={**api_headers, "Content-Type": "application/json"},
    )

    assert resp.status == 400
    assert resp.content_type == "application/json"
    body = await resp.json()
    assert body["error"] == "Bad Request"
    assert body["message"] == "Invalid JSON format"


async def test_ingest_empty_body(service_client, api_headers):
    resp = await service_client.post(
        "/api/v1/telemetry",
        data="",
        headers={**api_headers, "Content-Type": "application/json"},
    )

    assert resp.status == 400


async def test_ingest_missing_required_fields(service_client, api_headers):
    resp = await service_client.post("/api/v1/telemetry", json={}, headers=api_headers)

    assert resp.status == 400
    body = await resp.json()
    assert body["error"] == "Validation Failed"
    assert body["message"] == "Request validation failed"
    assert any(detail.startswith("deviceId:") for detail in body["details"])
    assert any(detail.startswith("timestamp:") for detail in body["details"])


async def test_ingest_rejects_invalid_event_severity(service_client, api_headers):
    payload = _payload(
        events=[{"type": "boot", "message": "Booted", "severity": "LOUD", "timestamp": TS}]
    )

    resp = await service_client.post("/api/v1/telemetry", json=payload, headers=api_headers)

    assert resp.status == 400
    body = await resp.json()
    assert any(detail.startswith("events.0.severity") for detail in body["details"])


async def test_ingest_wrong_content_type(service_client, api_headers):
    resp = await service_client.post(
        "/api/v1/telemetry",
        data="plain text",
        headers={**api_headers, "Content-Type": "text/plain"},
    )

    assert resp.status == 415


async def test_ingest_truncates_large_otel_batch(service_client, api_headers):
    otel = [
        {
            "name": f"very_long_metric_name_that_exceeds_size_limit_{i}",
            "value": float(i),
            "labels": {f"very_long_label_key_{i}": f"very_long_label_value_{i}"},
            "timestamp": TS,
        }
        for i in range(1, 51)
    ]

    resp = await service_client.post(
        "/api/v1/telemetry",
        json=_payload(otel=otel, events=[], metrics=[]),
        headers=api_headers,
    )

    assert resp.status == 200
    body = await resp.json()
    assert body["status"] == "accepted_with_warnings"
    assert body["truncatedOtel"] is True
    assert 0 < body["validatedMetrics"] < 50
    assert body["warnings"][0].startswith("OTEL batch size exceeded limit")
