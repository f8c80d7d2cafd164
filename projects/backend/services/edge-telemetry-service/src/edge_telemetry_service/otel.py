"""OpenTelemetry instrumentation for edge-telemetry-service.

Activated only when ``otel_exporter_endpoint`` is set in settings.
Provides:
  - TracerProvider with OTLP HTTP exporter and aiohttp server auto-instrumentation
  - MeterProvider with OTLP HTTP exporter, so the validation outcome counters
    reach the collector
"""
from __future__ import annotations

import structlog
from aiohttp import web

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.aiohttp_server import AioHttpServerInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from edge_telemetry_service.settings import Settings

logger = structlog.get_logger(__name__)

OTEL_PROVIDERS_KEY = web.AppKey("otel_providers", tuple)


def setup_otel(app: web.Application, settings: Settings) -> None:
    """Initialise tracing and metrics export if ``otel_exporter_endpoint`` is configured."""
    endpoint = settings.otel_exporter_endpoint
    if not endpoint:
        logger.info("otel_exporter_endpoint not set, OpenTelemetry export disabled")
        return

    base = str(endpoint).rstrip("/")
    timeout = settings.otel_export_timeout_seconds
    resource = Resource.create({SERVICE_NAME: settings.app_name})

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{base}/v1/traces", timeout=timeout))
    )
    trace.set_tracer_provider(tracer_provider)

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{base}/v1/metrics", timeout=timeout),
        export_interval_millis=settings.otel_export_interval_seconds * 1000,
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(meter_provider)

    AioHttpServerInstrumentor().instrument(server=app)

    app[OTEL_PROVIDERS_KEY] = (tracer_provider, meter_provider)
    app.on_cleanup.append(shutdown_otel)

    logger.info("OpenTelemetry export enabled", endpoint=base, service=settings.app_name)


async def shutdown_otel(app: web.Application) -> None:
    """Flush pending spans and metrics on application shutdown."""
    providers = app.get(OTEL_PROVIDERS_KEY)
    if not providers:
        return
    for provider in providers:
        provider.shutdown()
    logger.info("OpenTelemetry providers shut down")
