from __future__ import annotations

import io
from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.config import get_settings
from app.main import create_app
from app.observability.events import EventEmitter, EventRecord
from app.observability.sinks import ConsoleSink


class CapturingSink:
    name = "capture"

    def __init__(self) -> None:
        self.records: list[EventRecord] = []
        self.closed = False

    def write(self, record: EventRecord) -> None:
        self.records.append(record)

    def close(self) -> None:
        self.closed = True

    def named(self, event: str) -> list[EventRecord]:
        return [record for record in self.records if record.event == event]

    def for_request(self, request_id: str) -> list[EventRecord]:
        return [record for record in self.records if record.request_id == request_id]


class FailingSink:
    name = "otlp"

    def __init__(self) -> None:
        self.calls = 0

    def write(self, record: EventRecord) -> None:
        self.calls += 1
        raise ConnectionError("collector unreachable")

    def close(self) -> None:
        return None


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENABLE_TRACING", "false")
    monkeypatch.setenv("SIGNOZ_ENDPOINT", "")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def capture() -> CapturingSink:
    return CapturingSink()


@pytest.fixture
def console_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def emitter(capture: CapturingSink, console_stream: io.StringIO) -> EventEmitter:
    return EventEmitter([capture, ConsoleSink(console_stream)])


@pytest.fixture
def app(emitter: EventEmitter) -> FastAPI:
    return create_app(get_settings(), emitter=emitter)


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()
