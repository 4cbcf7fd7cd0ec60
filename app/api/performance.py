from __future__ import annotations

from datetime import datetime, timezone
from time import perf_counter

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.dependencies import get_events
from app.models.schemas import ErrorResponse, PerformanceResult
from app.observability.events import EventEmitter
from app.observability.tracing import create_span
from app.services.performance import run_scenario

router = APIRouter(tags=["performance"])


def _format_ms(start: float) -> str:
    return f"{round((perf_counter() - start) * 1000)}ms"


@router.get(
    "/performance-test/{scenario}",
    response_model=PerformanceResult,
    responses={500: {"model": ErrorResponse}},
)
async def performance_test(scenario: str, events: EventEmitter = Depends(get_events)) -> PerformanceResult | JSONResponse:
    start = perf_counter()
    events.info(
        "PERFORMANCE_TEST_STARTED",
        "Starting performance test",
        scenario=scenario,
        startTime=datetime.now(timezone.utc).isoformat(),
    )

    with create_span(f"performance-test {scenario}", attributes={"performance.scenario": scenario}):
        try:
            await run_scenario(scenario)
        except Exception as exc:  # noqa: BLE001
            events.error(
                "PERFORMANCE_TEST_FAILED",
                "Performance test failed",
                scenario=scenario,
                error=str(exc),
                duration=_format_ms(start),
            )
            return JSONResponse(status_code=500, content={"error": "Performance test failed"})

        duration = _format_ms(start)
        events.info(
            "PERFORMANCE_TEST_COMPLETED",
            "Performance test completed",
            scenario=scenario,
            duration=duration,
            endTime=datetime.now(timezone.utc).isoformat(),
        )

    return PerformanceResult(scenario=scenario, duration=duration)
