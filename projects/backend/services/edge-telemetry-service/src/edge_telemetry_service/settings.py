"""Application settings."""
from __future__ import annotations

from functools import lru_cache

from pydantic import AnyHttpUrl, Field, model_validator

from backend_common.settings.base import BaseServiceSettings, split_csv

from edge_telemetry_service.core.exceptions import InvalidPolicyError
from edge_telemetry_service.domain.models import Policy

DEFAULT_PROMETHEUS_WHITELIST = (
    "esp32_temperature_celsius",
    "esp32_memory_usage_bytes",
    "esp32_wifi_signal_strength",
)


class Settings(BaseServiceSettings):
    """Core configuration for the Edge Telemetry Service."""

    app_name: str = "edge-telemetry-service"
    port: int = Field(default=8080, ge=1024, le=65535)
    log_level: str = "INFO"

    # Comma-separated in the environment; parsed into the sets below
    api_keys_str: str = Field(default="", alias="TELEMETRY_API_KEYS")
    prometheus_whitelist_str: str = Field(
        default=",".join(DEFAULT_PROMETHEUS_WHITELIST),
        alias="PROMETHEUS_WHITELIST",
    )

    api_keys: frozenset[str] = Field(
        default=frozenset(),
        validation_alias="__api_keys_internal__",
    )
    prometheus_whitelist: frozenset[str] = Field(
        default=frozenset(DEFAULT_PROMETHEUS_WHITELIST),
        validation_alias="__prometheus_whitelist_internal__",
    )

    # Validation limits
    max_otel_batch_bytes: int = Field(default=1024 * 1024, gt=0)
    max_events_count: int = Field(default=100, gt=0)

    # OTLP collector (Grafana Alloy); export is disabled when unset
    otel_exporter_endpoint: AnyHttpUrl | None = None
    otel_export_timeout_seconds: float = 30.0
    otel_export_interval_seconds: float = 15.0

    @model_validator(mode="after")
    def parse_key_sets(self) -> "Settings":
        self.api_keys = frozenset(split_csv(self.api_keys_str))
        whitelist = split_csv(self.prometheus_whitelist_str)
        if not whitelist:
            raise ValueError("PROMETHEUS_WHITELIST must name at least one metric")
        self.prometheus_whitelist = frozenset(whitelist)
        return self


def build_policy(settings: Settings) -> Policy:
    """Snapshot the validation policy; called once at startup."""
    if not settings.prometheus_whitelist:
        raise InvalidPolicyError("Prometheus whitelist cannot be empty")
    if settings.max_otel_batch_bytes <= 0:
        raise InvalidPolicyError("Max OTEL batch size must be positive")
    if settings.max_events_count <= 0:
        raise InvalidPolicyError("Max events array size must be positive")
    return Policy(
        prometheus_whitelist=frozenset(settings.prometheus_whitelist),
        max_otel_batch_bytes=settings.max_otel_batch_bytes,
        max_events_count=settings.max_events_count,
    )


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


settings = get_settings()
