from __future__ import annotations

from fastapi import Request

from app.observability.events import EventEmitter
from app.services.storage import InMemoryStore


def get_events(request: Request) -> EventEmitter:
    return request.app.state.events


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store
