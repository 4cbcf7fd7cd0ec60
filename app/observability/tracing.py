"""OpenTelemetry tracing setup.

Installs one SDK tracer provider per process and instruments the FastAPI app
so every request runs inside a server span. W3C ``traceparent`` headers on
inbound requests are honoured by the instrumentation.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, SpanKind, Tracer

from app.config import Settings


_TRACER_NAME = "app"
_provider: TracerProvider | None = None


def setup_tracing(settings: Settings) -> TracerProvider:
    """Create and install the global tracer provider (once per process).

    Spans are exported over OTLP/HTTP to ``{SIGNOZ_ENDPOINT}/v1/traces`` when an
    endpoint is configured; otherwise they are recorded but not shipped.
    """

    global _provider
    if _provider is not None:
        return _provider

    resource = Resource.create({SERVICE_NAME: settings.service_name, SERVICE_VERSION: settings.service_version})
    provider = TracerProvider(resource=resource)

    endpoint = settings.traces_endpoint
    if endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))

    trace.set_tracer_provider(provider)
    _provider = provider
    return provider


def shutdown_tracing() -> None:
    """Flush pending spans and stop the exporter. The provider stays installed."""

    if _provider is not None:
        _provider.shutdown()


def instrument_app(app: FastAPI, provider: TracerProvider) -> None:
    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)


def get_tracer() -> Tracer:
    # No-op tracer until setup_tracing() installs the SDK provider.
    return trace.get_tracer(_TRACER_NAME)


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    with get_tracer().start_as_current_span(name, kind=kind, attributes=attributes or {}) as span:
        yield span
