import asyncio
import re

from fastapi import Request
from httpx import ASGITransport, AsyncClient
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.trace import TracerProvider

from app.config import get_settings
from app.main import create_app
from app.observability.events import EventEmitter, Level
from app.observability.tracing import instrument_app


def _add_failing_route(app) -> None:
    @app.get("/explode")
    async def explode() -> dict:
        raise RuntimeError("kaboom")


async def test_each_request_gets_received_and_completed_events(api_client, capture) -> None:
    resp = await api_client.get("/health", headers={"User-Agent": "pytest-agent"})

    request_id = resp.headers["X-Request-ID"]
    events = [record.event for record in capture.for_request(request_id)]
    assert events == ["REQUEST_RECEIVED", "HEALTH_CHECK", "REQUEST_COMPLETED"]

    (received,) = capture.named("REQUEST_RECEIVED")
    assert received.attributes["method"] == "GET"
    assert received.attributes["path"] == "/health"
    assert received.attributes["userAgent"] == "pytest-agent"

    (completed,) = capture.named("REQUEST_COMPLETED")
    assert completed.level is Level.INFO
    assert completed.attributes["statusCode"] == 200
    assert completed.attributes["durationMs"] >= 0


async def test_request_ids_differ_between_requests(api_client, capture) -> None:
    first = await api_client.get("/health")
    second = await api_client.get("/health")

    assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]
    assert len({record.request_id for record in capture.named("REQUEST_RECEIVED")}) == 2


async def test_client_errors_still_complete(api_client, capture) -> None:
    resp = await api_client.get("/no-such-route")

    assert resp.status_code == 404
    (completed,) = capture.named("REQUEST_COMPLETED")
    assert completed.attributes["statusCode"] == 404
    assert not capture.named("UNHANDLED_ERROR")


async def test_handlers_see_the_request_id_on_request_state(app, capture) -> None:
    @app.get("/whoami")
    async def whoami(request: Request) -> dict:
        return {"requestId": request.state.request_id}

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/whoami")

    assert resp.status_code == 200
    assert resp.json()["requestId"] == resp.headers["X-Request-ID"]
    (received,) = capture.named("REQUEST_RECEIVED")
    assert received.request_id == resp.headers["X-Request-ID"]


async def test_unhandled_error_is_caught_at_the_boundary(app, capture) -> None:
    _add_failing_route(app)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/explode")

    assert resp.status_code == 500
    body = resp.json()
    assert body == {"error": "Internal Server Error", "requestId": body["requestId"], "message": "kaboom"}
    assert resp.headers["X-Request-ID"] == body["requestId"]

    assert len(capture.named("REQUEST_RECEIVED")) == 1
    assert not capture.named("REQUEST_COMPLETED")
    (failure,) = capture.named("UNHANDLED_ERROR")
    assert failure.level is Level.ERROR
    assert failure.request_id == body["requestId"]
    assert failure.attributes["error"] == "kaboom"
    assert failure.attributes["path"] == "/explode"
    assert failure.attributes["method"] == "GET"
    assert failure.attributes["durationMs"] >= 0
    assert "RuntimeError: kaboom" in failure.attributes["stack"]


async def test_durable_sink_failure_does_not_fail_the_request(failing_sink, capture, console_stream) -> None:
    from app.observability.sinks import ConsoleSink

    emitter = EventEmitter([failing_sink, ConsoleSink(console_stream), capture])
    app = create_app(get_settings(), emitter=emitter)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.post("/users", json={"username": "a", "email": "b@c.com"})

    assert resp.status_code == 201
    assert failing_sink.calls == 3
    output = console_stream.getvalue()
    assert "[info] REQUEST_RECEIVED: New incoming request" in output
    assert "[info] USER_CREATED: New user created successfully" in output
    assert "[info] REQUEST_COMPLETED: Request processed" in output
    assert resp.headers["X-Request-ID"] not in output


async def test_events_have_no_trace_fields_without_instrumentation(api_client, capture) -> None:
    resp = await api_client.get("/health")

    assert resp.status_code == 200
    assert len(capture.records) == 3
    for record in capture.records:
        payload = record.to_dict()
        assert record.trace is None
        assert "trace_id" not in payload
        assert "span_id" not in payload
        assert "trace_flags" not in payload


async def test_events_carry_trace_identity_when_instrumented(emitter, capture) -> None:
    app = create_app(get_settings(), emitter=emitter)
    instrument_app(app, TracerProvider())
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/health")
    finally:
        FastAPIInstrumentor.uninstrument_app(app)

    assert resp.status_code == 200
    received, check, completed = (record.to_dict() for record in capture.records)
    assert re.fullmatch(r"[0-9a-f]{32}", received["trace_id"])
    assert received["trace_id"] == check["trace_id"] == completed["trace_id"]
    assert received["span_id"] == completed["span_id"]
    assert re.fullmatch(r"[0-9a-f]{2}", received["trace_flags"])
    assert int(received["trace_flags"], 16) & 0x01


async def test_concurrent_requests_are_not_cross_contaminated(api_client, capture) -> None:
    responses = await asyncio.gather(*(api_client.get("/performance-test/async-operations") for _ in range(20)))

    request_ids = [resp.headers["X-Request-ID"] for resp in responses]
    assert len(set(request_ids)) == 20

    for request_id in request_ids:
        events = [record.event for record in capture.for_request(request_id)]
        assert events == [
            "REQUEST_RECEIVED",
            "PERFORMANCE_TEST_STARTED",
            "PERFORMANCE_TEST_COMPLETED",
            "REQUEST_COMPLETED",
        ]


async def test_lifespan_emits_process_events_and_closes_emitter(app, capture) -> None:
    async with app.router.lifespan_context(app):
        pass

    started, stopped = capture.records
    assert started.event == "SERVER_STARTED"
    assert started.request_id is None
    assert started.attributes["port"] == get_settings().port
    assert stopped.event == "SERVER_STOPPED"
    assert capture.closed
