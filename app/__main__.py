from __future__ import annotations

from types import FrameType

import uvicorn

from app.config import get_settings
from app.main import create_app
from app.observability.events import EventEmitter


class ObservedServer(uvicorn.Server):
    """uvicorn server that records the shutdown signal before closing the listener."""

    def __init__(self, config: uvicorn.Config, events: EventEmitter) -> None:
        super().__init__(config)
        self.events = events

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        if not self.should_exit:
            self.events.warn(
                "SHUTDOWN_INITIATED",
                "Termination signal received. Initiating graceful shutdown",
                signal=int(sig),
            )
        super().handle_exit(sig, frame)


def main() -> None:
    settings = get_settings()
    app = create_app(settings)
    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None)
    ObservedServer(config, app.state.events).run()


if __name__ == "__main__":
    main()
