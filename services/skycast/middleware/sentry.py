"""
Sentry instrumentation for the FastAPI service.
Server-side only. Scrubs the OpenWeatherMap API key from outbound HTTP
breadcrumbs and strips sensitive headers from inbound request data.
"""

import re
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from services.skycast.config import settings

SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie"}

# appid=<key> in any query string
_APPID_RE = re.compile(r"(appid=)[^&\s]+", re.IGNORECASE)


def _scrub_appid(value: Any) -> Any:
    if isinstance(value, str):
        return _APPID_RE.sub(r"\1[FILTERED]", value)
    return value


def _scrub_headers(headers: Any) -> None:
    if isinstance(headers, dict):
        for key in list(headers.keys()):
            if key.lower() in SENSITIVE_HEADERS:
                headers[key] = "[FILTERED]"


def _strip_sensitive_data(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """before_send hook: hide the provider key and auth headers."""
    if "breadcrumbs" in event:
        for breadcrumb in event["breadcrumbs"].get("values", []):
            data = breadcrumb.get("data", {})
            if isinstance(data, dict):
                for field in ("url", "http.query"):
                    if field in data:
                        data[field] = _scrub_appid(data[field])
                _scrub_headers(data.get("headers", {}))
    request = event.get("request", {})
    if isinstance(request, dict):
        _scrub_headers(request.get("headers", {}))
        if "query_string" in request:
            request["query_string"] = _scrub_appid(request["query_string"])
    return event


def setup_sentry() -> None:
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        before_send=_strip_sensitive_data,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,
    )
