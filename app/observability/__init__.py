"""Request observability: correlation ids, structured events, tracing.

Events go to two sinks: a readable console line and the OpenTelemetry logs
SDK (shipped over OTLP/HTTP when ``SIGNOZ_ENDPOINT`` is set). structlog
handles the process's own diagnostic logs.
"""

from __future__ import annotations

from app.config import Settings
from app.observability.events import EventEmitter
from app.observability.sinks import ConsoleSink, OTLPLogSink, create_logger_provider


def build_emitter(settings: Settings) -> EventEmitter:
    """Construct the process-wide emitter. Call ``close()`` on shutdown to flush."""

    logger_provider = create_logger_provider(settings)
    return EventEmitter(
        [OTLPLogSink(logger_provider), ConsoleSink()],
        level=settings.log_level,
        closers=[logger_provider.shutdown],
    )
