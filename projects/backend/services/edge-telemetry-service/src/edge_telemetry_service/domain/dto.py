"""Pydantic DTOs for device telemetry batches."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from edge_telemetry_service.domain.enums import EventSeverity, PrometheusMetricType

# Request-level caps; the validation policy may be stricter.
MAX_OTEL_METRICS_PER_BATCH = 1000
MAX_EVENTS_PER_BATCH = 100
MAX_PROMETHEUS_METRICS_PER_BATCH = 100


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]
MetadataValue = Union[str, bool, int, float, None]


class OtelMetricDTO(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: NonBlankStr = Field(min_length=1, max_length=100)
    value: float = Field(ge=-1e308, le=1e308)
    labels: dict[str, str] = Field(max_length=50)
    timestamp: datetime


class EventDTO(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str = Field(min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9_.-]+$")
    message: NonBlankStr = Field(min_length=1, max_length=1000)
    severity: EventSeverity
    timestamp: datetime
    metadata: dict[str, MetadataValue] | None = Field(default=None, max_length=20)


class PrometheusMetricDTO(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: NonBlankStr = Field(min_length=1)
    value: float
    labels: dict[str, str]
    help: str | None = None
    type: PrometheusMetricType | None = None


OtelMetrics = Annotated[list[OtelMetricDTO], Field(max_length=MAX_OTEL_METRICS_PER_BATCH)]
Events = Annotated[list[EventDTO], Field(max_length=MAX_EVENTS_PER_BATCH)]
PrometheusMetrics = Annotated[
    list[PrometheusMetricDTO], Field(max_length=MAX_PROMETHEUS_METRICS_PER_BATCH)
]


class TelemetryBatchDTO(BaseModel):
    """One device submission; streams keep submission order (last = most recent)."""

    # Older firmware still sends its API key inside the body; unknown top-level keys are ignored.
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    device_id: NonBlankStr = Field(alias="deviceId", min_length=1, max_length=50)
    timestamp: datetime
    otel_metrics: OtelMetrics | None = Field(default=None, alias="otel")
    events: Events | None = None
    prometheus_metrics: PrometheusMetrics | None = Field(default=None, alias="metrics")


class TelemetryResponseDTO(BaseModel):
    """Wire response for an accepted batch."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    validated_metrics: int = Field(alias="validatedMetrics")
    truncated_otel: bool = Field(alias="truncatedOtel")
    truncated_events: bool = Field(alias="truncatedEvents")
    dropped_prometheus_metrics: int = Field(alias="droppedPrometheusMetrics")
    warnings: list[str] | None = None
