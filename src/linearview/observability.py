"""Lightweight helpers for configuring OpenTelemetry exporters."""

from __future__ import annotations

import importlib
import os
from functools import lru_cache
from typing import Any, Final

from opentelemetry import trace

from .logging import get_logger

EXPORTER_ENV_VAR = "LINEARVIEW_OTEL_EXPORTER"
ENDPOINT_ENV_VAR = "LINEARVIEW_OTEL_ENDPOINT"
SERVICE_NAME = "linearview"

_telemetry_configured: Final[dict[str, bool]] = {"configured": False}


@lru_cache(maxsize=1)
def _load_sdk() -> dict[str, Any] | None:
    try:  # pragma: no cover - optional dependency
        resources_module = importlib.import_module("opentelemetry.sdk.resources")
        trace_sdk_module = importlib.import_module("opentelemetry.sdk.trace")
        export_module = importlib.import_module("opentelemetry.sdk.trace.export")
    except ImportError:
        return None
    return {
        "TracerProvider": trace_sdk_module.TracerProvider,
        "Resource": resources_module.Resource,
        "BatchSpanProcessor": export_module.BatchSpanProcessor,
        "ConsoleSpanExporter": export_module.ConsoleSpanExporter,
    }


def _load_otlp_exporter() -> Any | None:
    try:  # pragma: no cover - optional dependency
        module = importlib.import_module("opentelemetry.exporter.otlp.proto.http.trace_exporter")
    except ImportError:
        return None
    return module.OTLPSpanExporter


def telemetry_from_env() -> tuple[str | None, str | None]:
    exporter = os.environ.get(EXPORTER_ENV_VAR, "").strip().lower() or None
    endpoint = os.environ.get(ENDPOINT_ENV_VAR, "").strip() or None
    return exporter, endpoint


def configure_telemetry(
    *,
    service_name: str = SERVICE_NAME,
    exporter: str = "console",
    endpoint: str | None = None,
) -> bool:
    """Install an SDK tracer provider once per process.

    Returns False when the SDK (or the requested exporter) is not installed;
    spans then go to the API's no-op tracer.
    """
    if _telemetry_configured["configured"]:
        return True

    logger = get_logger()
    runtime = _load_sdk()
    if runtime is None:
        logger.debug("OpenTelemetry SDK not installed; tracing stays disabled")
        return False

    if exporter.lower() == "otlp":
        otlp_cls = _load_otlp_exporter()
        if otlp_cls is None:
            logger.warning("OTLP exporter requested but not installed; tracing stays disabled")
            return False
        span_exporter = otlp_cls(endpoint=endpoint) if endpoint else otlp_cls()
    else:
        span_exporter = runtime["ConsoleSpanExporter"]()

    resource = runtime["Resource"].create({"service.name": service_name})
    provider = runtime["TracerProvider"](resource=resource)
    provider.add_span_processor(runtime["BatchSpanProcessor"](span_exporter))
    trace.set_tracer_provider(provider)
    _telemetry_configured["configured"] = True
    logger.debug("OpenTelemetry configured", exporter=exporter)
    return True


__all__ = ["EXPORTER_ENV_VAR", "configure_telemetry", "telemetry_from_env"]
