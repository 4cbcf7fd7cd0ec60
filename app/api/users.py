from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.api.dependencies import get_events, get_store
from app.models.schemas import User, ValidationErrorResponse
from app.observability.events import EventEmitter
from app.services.storage import InMemoryStore
from app.services.validation import validate_new_user

router = APIRouter(tags=["users"])


@router.post(
    "/users",
    status_code=201,
    response_model=User,
    responses={400: {"model": ValidationErrorResponse}},
)
async def create_user(
    payload: dict[str, Any] = Body(default={}),
    events: EventEmitter = Depends(get_events),
    store: InMemoryStore = Depends(get_store),
) -> User | JSONResponse:
    username, email, age = payload.get("username"), payload.get("email"), payload.get("age")

    errors = validate_new_user(payload)
    if errors:
        events.warn(
            "VALIDATION_FAILED",
            "User creation validation failed",
            errors=errors,
            userData={"username": username, "email": email, "age": age},
        )
        return JSONResponse(status_code=400, content={"errors": errors})

    user = store.create_user(username=username, email=email, age=age)
    events.info("USER_CREATED", "New user created successfully", userId=user.id, username=user.username)
    return user
