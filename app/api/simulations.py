from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.dependencies import get_events
from app.models.schemas import SimulatedErrorResponse
from app.observability.events import EventEmitter
from app.services.faults import simulate

router = APIRouter(tags=["simulations"])


@router.get(
    "/simulate-error/{error_type}",
    status_code=500,
    response_model=SimulatedErrorResponse,
)
async def simulate_error(error_type: str, events: EventEmitter = Depends(get_events)) -> JSONResponse:
    events.info("ERROR_SIMULATION_STARTED", "Starting error simulation", errorType=error_type)

    fault = simulate(error_type)
    events.error(
        "ERROR_SIMULATION_TRIGGERED",
        "Simulated error occurred",
        errorType=error_type,
        errorClass=fault.kind,
        error=fault.message,
        stack=fault.stack,
    )

    body = SimulatedErrorResponse(type=error_type, message=fault.message)
    return JSONResponse(status_code=500, content=body.model_dump())
