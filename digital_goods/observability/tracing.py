"""
Distributed Tracing with OpenTelemetry.

Spans cover the inbound webhook turn, the intent handler, and the outbound
commerce API calls it makes. Everything here is a no-op unless
TRACING_ENABLED is set.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import httpx
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Status, StatusCode

from digital_goods.config import settings

TRACER_NAME = "digital_goods.fulfillment"

# Webhook paths that are polled and not worth a span
EXCLUDED_URLS = "health,metrics"


def setup_tracing() -> None:
    """Install a global tracer provider exporting to the OTLP collector."""
    if not settings.tracing_enabled:
        return

    provider = TracerProvider(
        resource=Resource.create(
            {
                SERVICE_NAME: settings.service_name,
                SERVICE_VERSION: settings.api_version,
                "app.package_name": settings.package_name,
            }
        )
    )
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=settings.otlp_insecure)
        )
    )
    trace.set_tracer_provider(provider)


def instrument_fastapi(app: FastAPI) -> None:
    """Trace inbound requests. Call once, after the app is created."""
    if not settings.tracing_enabled:
        return

    FastAPIInstrumentor.instrument_app(app, excluded_urls=EXCLUDED_URLS)


def instrument_httpx(client: httpx.AsyncClient) -> None:
    """Give each commerce API call its own client span."""
    if not settings.tracing_enabled:
        return

    HTTPXClientInstrumentor.instrument_client(client)


def _set_attributes(span: Span, attributes: dict[str, Any]) -> None:
    for key, value in attributes.items():
        if value is None:
            continue
        span.set_attribute(key, value if isinstance(value, (str, int, float, bool)) else str(value))


@contextmanager
def trace_operation(operation_name: str, **attributes: Any) -> Iterator[Span]:
    """
    Run a block inside a span, marking the span as failed if the block raises.

    Usage:
        with trace_operation("intent_fulfillment", intent="actions.intent.OPTION") as span:
            span.set_attribute("outcome", "purchase_requested")
    """
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(
        operation_name, record_exception=False, set_status_on_exception=False
    ) as span:
        _set_attributes(span, attributes)
        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise
