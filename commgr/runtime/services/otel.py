"""OpenTelemetry bootstrap and span helpers for the router."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)

_TRACER_NAME = "commgr"

_otel_active = False


def configure_otel(*, service_name: str = "commgr") -> bool:
    """Install an SDK tracer provider exporting spans to the console.

    Returns ``True`` if tracing is active afterwards.  Failures are logged
    and never prevent the router from starting.
    """
    global _otel_active

    if _otel_active:
        logger.info("[otel.configure] OTel already active, skipping re-init")
        return True

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

        provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        trace.set_tracer_provider(provider)
        _otel_active = True
        logger.info("[otel.configure] tracing enabled (service=%s)", service_name)
        return True
    except Exception:
        logger.error("[otel.configure] Failed to configure OTel", exc_info=True)
        return False


def shutdown_otel() -> None:
    """Flush and shut down the tracer provider."""
    global _otel_active

    if not _otel_active:
        return
    try:
        from opentelemetry import trace

        tp = trace.get_tracer_provider()
        if hasattr(tp, "shutdown"):
            tp.shutdown()
        logger.info("[otel.shutdown] tracer provider shut down")
    except Exception:
        logger.warning("[otel.shutdown] Error during OTel shutdown", exc_info=True)
    finally:
        _otel_active = False


@contextmanager
def router_span(
    name: str,
    *,
    attributes: dict[str, Any] | None = None,
) -> Generator[Any, None, None]:
    """Trace a router operation; yields ``None`` when OTel is inactive."""
    if not _otel_active:
        yield None
        return

    from opentelemetry import trace

    tracer = trace.get_tracer(_TRACER_NAME)
    with tracer.start_as_current_span(name, attributes=attributes) as span:
        yield span


def record_event(name: str, attributes: dict[str, Any] | None = None) -> None:
    """Record an event on the current active span (if any)."""
    if not _otel_active:
        return
    from opentelemetry import trace

    span = trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name, attributes=attributes)


def set_span_attribute(key: str, value: Any) -> None:
    """Set an attribute on the current active span (if any)."""
    if not _otel_active:
        return
    from opentelemetry import trace

    span = trace.get_current_span()
    if span and span.is_recording():
        span.set_attribute(key, value)
