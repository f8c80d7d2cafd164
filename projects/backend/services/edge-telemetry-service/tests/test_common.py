"""Shared middleware and logging helpers."""
from __future__ import annotations

from yarl import URL

from backend_common.logging_config import replace_newlines_processor
from backend_common.middleware.trace import get_safe_headers, is_valid_uuid, redact_url


def test_redact_url_masks_api_key():
    url = URL("http://localhost/api/v1/telemetry?apiKey=secret-device-key&debug=1")

    redacted = redact_url(url)

    assert "secret-device-key" not in redacted
    assert URL(redacted).query["apiKey"] == "***"
    assert URL(redacted).query["debug"] == "1"


def test_redact_url_without_query():
    assert redact_url(URL("http://localhost/health")) == "http://localhost/health"


def test_safe_headers_drop_credentials():
    headers = {"X-API-Key": "secret", "Authorization": "Bearer x", "Content-Type": "application/json"}

    assert get_safe_headers(headers) == {"Content-Type": "application/json"}


def test_is_valid_uuid():
    assert is_valid_uuid("6f1c3f0e-8c1a-4b4e-9a7d-2f1e0c9b8a7d")
    assert not is_valid_uuid("not-a-uuid")


def test_log_values_are_single_line():
    event_dict = {
        "event": "Dropped non-whitelisted Prometheus metric",
        "metric_name": "evil\nlevel=error",
        "warnings": ["a\r\nb", {"nested": "c\td"}],
    }

    result = replace_newlines_processor(None, "warning", event_dict)

    assert result["metric_name"] == "evil\\nlevel=error"
    assert result["warnings"] == ["a\\r\\nb", {"nested": "c\\td"}]
