"""Structured event records and the emitter that fans them out to sinks.

An ``EventEmitter`` is built once at process start (see ``app.main``) and
shared by the lifecycle middleware and the route handlers through
``app.state.events``. Emission never raises into the caller: a failing sink
is reported once through the diagnostic logger and skipped.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol

import structlog

from app.observability.context import TraceIdentity, current_request_id, current_trace_identity


class Level(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def levelno(self) -> int:
        return _LEVELNO[self]


_LEVELNO = {
    Level.DEBUG: logging.DEBUG,
    Level.INFO: logging.INFO,
    Level.WARN: logging.WARNING,
    Level.ERROR: logging.ERROR,
}

TRACE_FIELDS = ("trace_id", "span_id", "trace_flags")


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class EventRecord:
    level: Level
    event: str
    message: str
    timestamp: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    request_id: str | None = None
    trace: TraceIdentity | None = None

    def to_dict(self) -> dict[str, Any]:
        """Flatten into the wire shape shared by every sink."""

        payload: dict[str, Any] = dict(self.attributes)
        payload.update(
            level=self.level.value,
            event=self.event,
            message=self.message,
            timestamp=self.timestamp,
        )
        if self.request_id is not None:
            payload["requestId"] = self.request_id
        if self.trace is not None:
            # Trace fields are written last; callers must not reuse these keys.
            payload.update(self.trace.as_dict())
        return payload


class EventSink(Protocol):
    name: str

    def write(self, record: EventRecord) -> None: ...

    def close(self) -> None: ...


class EventEmitter:
    def __init__(
        self,
        sinks: Sequence[EventSink],
        *,
        level: Level | str = Level.DEBUG,
        closers: Sequence[Callable[[], Any]] = (),
    ) -> None:
        self._sinks = list(sinks)
        self._threshold = _coerce_level(level).levelno
        self._closers = list(closers)
        self._failed_sinks: set[str] = set()
        self._closed = False
        self._log = structlog.get_logger("app.events")

    def emit(
        self,
        level: Level | str,
        event: str,
        message: str,
        attributes: Mapping[str, Any] | None = None,
    ) -> EventRecord | None:
        level = _coerce_level(level)
        if level.levelno < self._threshold:
            return None

        record = EventRecord(
            level=level,
            event=event,
            message=message,
            timestamp=_utcnow_iso(),
            attributes=MappingProxyType(dict(attributes or {})),
            request_id=current_request_id(),
            trace=current_trace_identity(),
        )

        for sink in self._sinks:
            try:
                sink.write(record)
            except Exception:  # noqa: BLE001
                self._report_sink_failure(sink, record)
        return record

    def debug(self, event: str, message: str, **attributes: Any) -> EventRecord | None:
        return self.emit(Level.DEBUG, event, message, attributes)

    def info(self, event: str, message: str, **attributes: Any) -> EventRecord | None:
        return self.emit(Level.INFO, event, message, attributes)

    def warn(self, event: str, message: str, **attributes: Any) -> EventRecord | None:
        return self.emit(Level.WARN, event, message, attributes)

    def error(self, event: str, message: str, **attributes: Any) -> EventRecord | None:
        return self.emit(Level.ERROR, event, message, attributes)

    def exception(self, event: str, message: str, exc: BaseException, **attributes: Any) -> EventRecord | None:
        """Emit an error record carrying the exception's message and stack text."""

        attributes.setdefault("error", str(exc))
        attributes.setdefault("stack", "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
        return self.emit(Level.ERROR, event, message, attributes)

    def close(self) -> None:
        """Close sinks, then flush and shut down the export providers. Idempotent."""

        if self._closed:
            return
        self._closed = True
        for sink in self._sinks:
            try:
                sink.close()
            except Exception:  # noqa: BLE001
                self._log.warning("event_sink_close_failed", sink=sink.name, exc_info=True)
        for closer in self._closers:
            try:
                closer()
            except Exception:  # noqa: BLE001
                self._log.warning("telemetry_shutdown_failed", exc_info=True)

    def _report_sink_failure(self, sink: EventSink, record: EventRecord) -> None:
        if sink.name in self._failed_sinks:
            return
        self._failed_sinks.add(sink.name)
        try:
            self._log.warning("event_sink_failed", sink=sink.name, dropped_event=record.event, exc_info=True)
        except Exception:  # noqa: BLE001
            pass


def _coerce_level(level: Level | str) -> Level:
    if isinstance(level, Level):
        return level
    name = level.lower()
    if name == "warning":
        name = "warn"
    if name == "critical":
        name = "error"
    return Level(name)
