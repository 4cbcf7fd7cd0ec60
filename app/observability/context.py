"""Request-scoped correlation and trace identity.

Each in-flight request gets its own ``CorrelationContext`` stored in a
``ContextVar``, so interleaved requests on one event loop never see each
other's ids. Trace identity is read from whatever OpenTelemetry span is
current at the moment of the call, not captured at request start.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone

from opentelemetry import trace


@dataclass(frozen=True)
class CorrelationContext:
    request_id: str
    started_at: datetime


@dataclass(frozen=True)
class TraceIdentity:
    trace_id: str
    span_id: str
    trace_flags: str

    def as_dict(self) -> dict[str, str]:
        return {"trace_id": self.trace_id, "span_id": self.span_id, "trace_flags": self.trace_flags}


_current: ContextVar[CorrelationContext | None] = ContextVar("correlation_context", default=None)


def new_request_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def begin_request() -> Iterator[CorrelationContext]:
    """Open a correlation scope for one request and tear it down on exit."""

    context = CorrelationContext(request_id=new_request_id(), started_at=datetime.now(timezone.utc))
    token = _current.set(context)
    try:
        yield context
    finally:
        _current.reset(token)


def current_correlation() -> CorrelationContext | None:
    return _current.get()


def current_request_id() -> str | None:
    context = _current.get()
    return context.request_id if context is not None else None


def current_trace_identity() -> TraceIdentity | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return TraceIdentity(
        trace_id=format(span_context.trace_id, "032x"),
        span_id=format(span_context.span_id, "016x"),
        trace_flags=format(span_context.trace_flags, "02x"),
    )
