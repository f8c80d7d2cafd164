"""Telemetry ingest endpoint."""
from __future__ import annotations

import structlog
from aiohttp import web
from pydantic import ValidationError

from backend_common.aiohttp_app import json_error, read_json

from edge_telemetry_service.domain.dto import TelemetryBatchDTO, TelemetryResponseDTO
from edge_telemetry_service.domain.models import ValidationOutcome
from edge_telemetry_service.services.dependencies import get_validation_service

TELEMETRY_PATH = "/api/v1/telemetry"

STATUS_ACCEPTED = "accepted"
STATUS_ACCEPTED_WITH_WARNINGS = "accepted_with_warnings"

logger = structlog.get_logger(__name__)

routes = web.RouteTableDef()


def format_validation_errors(exc: ValidationError) -> list[str]:
    """Render pydantic errors as ``field.path: message`` strings."""
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        details.append(f"{location}: {error['msg']}")
    return details


def build_response(outcome: ValidationOutcome) -> TelemetryResponseDTO:
    statistics = outcome.statistics
    return TelemetryResponseDTO(
        status=STATUS_ACCEPTED_WITH_WARNINGS if outcome.has_warnings else STATUS_ACCEPTED,
        validated_metrics=statistics.validated_metrics_total,
        truncated_otel=statistics.truncated_otel,
        truncated_events=statistics.truncated_events,
        dropped_prometheus_metrics=statistics.dropped_prometheus_metrics,
        warnings=[warning.message for warning in outcome.warnings] if outcome.has_warnings else None,
    )


@routes.post(TELEMETRY_PATH)
async def ingest_telemetry(request: web.Request) -> web.Response:
    """Ingest endpoint for device batches; content problems never reject a batch."""
    if request.content_type != "application/json":
        raise json_error(
            web.HTTPUnsupportedMediaType,
            "Unsupported Media Type",
            "Content-Type must be application/json",
            path=TELEMETRY_PATH,
        )

    body = await read_json(request, path=TELEMETRY_PATH)
    try:
        batch = TelemetryBatchDTO.model_validate(body)
    except ValidationError as exc:
        logger.warning("Request validation failed", error_count=exc.error_count())
        raise json_error(
            web.HTTPBadRequest,
            "Validation Failed",
            "Request validation failed",
            path=TELEMETRY_PATH,
            details=format_validation_errors(exc),
        ) from exc

    logger.info("Received telemetry data", device_id=batch.device_id)

    outcome = get_validation_service(request).validate(batch)
    response = build_response(outcome)

    logger.info(
        "Processed telemetry data",
        device_id=batch.device_id,
        status=response.status,
        validated_metrics=response.validated_metrics,
    )
    return web.json_response(response.model_dump(by_alias=True))
