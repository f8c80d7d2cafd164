"""Common exceptions for the service layer."""
from __future__ import annotations


class EdgeTelemetryError(Exception):
    """Base error for the edge telemetry service."""


class InvalidPolicyError(EdgeTelemetryError):
    """Raised when the validation policy is missing or degenerate."""


class ConfigurationError(EdgeTelemetryError):
    """Raised when the loaded configuration cannot serve traffic."""


class UnauthorizedError(EdgeTelemetryError):
    """Raised when a request carries no API key or an unknown one."""
