from __future__ import annotations

import json
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders

from app.observability.context import begin_request
from app.observability.events import EventEmitter


REQUEST_ID_HEADER = "X-Request-ID"


def _header(scope: dict[str, Any], name: bytes) -> str | None:
    for key, value in scope.get("headers") or []:
        if key.lower() == name:
            return value.decode("latin-1")
    return None


class RequestLifecycleMiddleware:
    """Wraps every HTTP request with received/completed (or failed) events.

    Exactly one ``REQUEST_RECEIVED`` and exactly one of ``REQUEST_COMPLETED`` /
    ``UNHANDLED_ERROR`` are emitted per request, all under the same request id.
    Any exception escaping the app is swallowed here after a generic 500 is sent.
    """

    def __init__(self, app: Callable[..., Any], emitter: EventEmitter) -> None:
        self.app = app
        self.emitter = emitter

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method")
        path = scope.get("path")
        client = scope.get("client")

        with begin_request() as correlation, structlog.contextvars.bound_contextvars(
            request_id=correlation.request_id
        ):
            request_id = correlation.request_id
            scope.setdefault("state", {})["request_id"] = request_id

            start = perf_counter()
            self.emitter.info(
                "REQUEST_RECEIVED",
                "New incoming request",
                method=method,
                path=path,
                ipAddress=client[0] if client else None,
                userAgent=_header(scope, b"user-agent"),
                query=scope.get("query_string", b"").decode("latin-1"),
            )

            status_code = 500
            response_started = False

            async def send_wrapper(message: dict[str, Any]) -> None:
                nonlocal status_code, response_started

                if message.get("type") == "http.response.start":
                    response_started = True
                    status_code = int(message.get("status", 500))
                    headers = MutableHeaders(scope=message)
                    headers[REQUEST_ID_HEADER] = request_id

                await send(message)

            try:
                await self.app(scope, receive, send_wrapper)
            except Exception as exc:  # noqa: BLE001
                self.emitter.exception(
                    "UNHANDLED_ERROR",
                    "Unhandled application error",
                    exc,
                    path=path,
                    method=method,
                    durationMs=_elapsed_ms(start),
                )
                if not response_started:
                    await _send_failure(send, request_id, str(exc))
                return

            self.emitter.info(
                "REQUEST_COMPLETED",
                "Request processed",
                method=method,
                path=path,
                statusCode=status_code,
                durationMs=_elapsed_ms(start),
            )


def _elapsed_ms(start: float) -> float:
    return round(max(perf_counter() - start, 0.0) * 1000.0, 3)


async def _send_failure(send: Callable[..., Any], request_id: str, message: str) -> None:
    body = json.dumps({"error": "Internal Server Error", "requestId": request_id, "message": message}).encode()
    await send(
        {
            "type": "http.response.start",
            "status": 500,
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode()),
                (REQUEST_ID_HEADER.lower().encode(), request_id.encode()),
            ],
        }
    )
    await send({"type": "http.response.body", "body": body})
