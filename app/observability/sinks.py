from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

import structlog
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource

from app.config import Settings
from app.observability.events import TRACE_FIELDS, EventRecord


# Fields left out of the readable console block; the durable sink keeps them all.
CONSOLE_HIDDEN_FIELDS = frozenset({*TRACE_FIELDS, "requestId", "service", "timestamp", "stack"})


def render_console_line(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> str:
    timestamp = event_dict.pop("timestamp", "")
    level = event_dict.pop("level", "")
    event = event_dict.pop("event", "")
    message = event_dict.pop("message", "")

    visible = {key: value for key, value in event_dict.items() if key not in CONSOLE_HIDDEN_FIELDS}
    line = f"{timestamp} [{level}] {event}: {message}"
    if visible:
        block = json.dumps(visible, indent=2, default=str, ensure_ascii=False)
        line += "\n  " + block.replace("\n", "\n  ")
    return line


class ConsoleSink:
    """Human-readable single-line rendering, one record per print."""

    name = "console"

    def __init__(self, stream: TextIO | None = None) -> None:
        self._logger = structlog.wrap_logger(
            structlog.PrintLogger(file=stream or sys.stdout),
            processors=[render_console_line],
            wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
        )

    def write(self, record: EventRecord) -> None:
        fields = record.to_dict()
        event = fields.pop("event")
        self._logger.info(event, **fields)

    def close(self) -> None:
        return None


def _reserved_logrecord_keys() -> frozenset[str]:
    sample = logging.LogRecord("", logging.INFO, "", 0, "", (), None)
    return frozenset({*sample.__dict__, "message", "asctime"})


_RESERVED_KEYS = _reserved_logrecord_keys()
_SCALARS = (str, bool, int, float)


def to_log_attributes(fields: dict[str, Any]) -> dict[str, Any]:
    """Make record fields safe as OpenTelemetry log attributes.

    Scalars pass through, ``None`` is dropped, anything else is JSON-encoded.
    Keys that collide with ``logging.LogRecord`` attributes get an ``event.``
    prefix so ``Logger.makeRecord`` accepts them.
    """

    attributes: dict[str, Any] = {}
    for key, value in fields.items():
        if value is None:
            continue
        if not isinstance(value, _SCALARS):
            value = json.dumps(value, default=str, ensure_ascii=False)
        if key in _RESERVED_KEYS:
            key = f"event.{key}"
        attributes[key] = value
    return attributes


class OTLPLogSink:
    """Durable sink: hands every record to the OpenTelemetry logs SDK."""

    name = "otlp"

    def __init__(self, logger_provider: LoggerProvider, logger_name: str = "app.events.otlp") -> None:
        self._provider = logger_provider
        self._logger = logging.getLogger(logger_name)
        self._logger.handlers = [LoggingHandler(level=logging.NOTSET, logger_provider=logger_provider)]
        self._logger.propagate = False
        self._logger.setLevel(logging.DEBUG)

    def write(self, record: EventRecord) -> None:
        fields = record.to_dict()
        message = fields.pop("message")
        self._logger.log(record.level.levelno, message, extra=to_log_attributes(fields))

    def close(self) -> None:
        self._provider.force_flush()


def create_logger_provider(settings: Settings) -> LoggerProvider:
    resource = Resource.create({SERVICE_NAME: settings.service_name, SERVICE_VERSION: settings.service_version})
    provider = LoggerProvider(resource=resource)

    endpoint = settings.logs_endpoint
    if endpoint:
        headers = {"signoz-access-token": settings.signoz_token} if settings.signoz_token else None
        provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter(endpoint=endpoint, headers=headers)))
    return provider
