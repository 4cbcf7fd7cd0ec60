from __future__ import annotations

import platform
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.health import memory_usage, router as health_router
from app.api.performance import router as performance_router
from app.api.posts import router as posts_router
from app.api.simulations import router as simulations_router
from app.api.users import router as users_router
from app.config import Settings, get_settings
from app.observability import build_emitter
from app.observability.events import EventEmitter
from app.observability.logging import configure_logging
from app.observability.middleware import RequestLifecycleMiddleware
from app.observability.tracing import instrument_app, setup_tracing, shutdown_tracing
from app.services.storage import InMemoryStore


def create_app(settings: Settings | None = None, *, emitter: EventEmitter | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    tracer_provider = setup_tracing(settings) if settings.enable_tracing else None
    events = emitter if emitter is not None else build_emitter(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        events.info(
            "SERVER_STARTED",
            "Server successfully started",
            port=settings.port,
            environment=settings.environment,
            pythonVersion=platform.python_version(),
            memory=memory_usage(),
        )
        yield
        events.info("SERVER_STOPPED", "Server stopped gracefully")
        events.close()
        if tracer_provider is not None:
            shutdown_tracing()

    app = FastAPI(title=settings.service_name, version=settings.service_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.events = events
    app.state.store = InMemoryStore()

    app.include_router(users_router)
    app.include_router(posts_router)
    app.include_router(performance_router)
    app.include_router(simulations_router)
    app.include_router(health_router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    # Added last so it wraps CORS and every route.
    app.add_middleware(RequestLifecycleMiddleware, emitter=events)

    if tracer_provider is not None:
        instrument_app(app, tracer_provider)

    return app

