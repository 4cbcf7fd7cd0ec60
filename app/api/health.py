from __future__ import annotations

import gc
import os
import resource
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.api.dependencies import get_events
from app.models.schemas import HealthResponse
from app.observability.events import EventEmitter

router = APIRouter(tags=["health"])

_PROCESS_STARTED = time.monotonic()


def memory_usage() -> dict[str, float]:
    # Peak resident set size over the process lifetime, in KiB (Linux getrusage units).
    usage = resource.getrusage(resource.RUSAGE_SELF)
    return {"peakRssKb": float(usage.ru_maxrss), "gcObjects": float(len(gc.get_objects()))}


def cpu_usage() -> dict[str, float]:
    # Microseconds, matching the user/system split most process monitors report.
    times = os.times()
    return {"user": round(times.user * 1_000_000), "system": round(times.system * 1_000_000)}


def process_uptime() -> float:
    return max(time.monotonic() - _PROCESS_STARTED, 0.0)


@router.get("/health", response_model=HealthResponse)
async def health(events: EventEmitter = Depends(get_events)) -> HealthResponse:
    payload = HealthResponse(
        uptime=process_uptime(),
        timestamp=datetime.now(timezone.utc).isoformat(),
        memory=memory_usage(),
        cpu=cpu_usage(),
    )
    events.info("HEALTH_CHECK", "Health check performed", health=payload.model_dump())
    return payload
