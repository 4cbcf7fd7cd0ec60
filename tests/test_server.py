import signal

import uvicorn

from app.__main__ import ObservedServer
from app.observability.events import Level


def test_shutdown_signal_is_recorded_once(app, capture) -> None:
    server = ObservedServer(uvicorn.Config(app, log_config=None), app.state.events)

    server.handle_exit(signal.SIGTERM, None)
    server.handle_exit(signal.SIGTERM, None)

    assert server.should_exit
    (initiated,) = capture.named("SHUTDOWN_INITIATED")
    assert initiated.level is Level.WARN
    assert initiated.attributes["signal"] == int(signal.SIGTERM)
    assert initiated.request_id is None


def test_importing_the_app_module_installs_no_tracer_provider() -> None:
    from opentelemetry import trace
    from opentelemetry.sdk.trace import TracerProvider

    import app.main  # noqa: F401

    assert not isinstance(trace.get_tracer_provider(), TracerProvider)
