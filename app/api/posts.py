from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.api.dependencies import get_events, get_store
from app.models.schemas import ErrorResponse, Post
from app.observability.events import EventEmitter
from app.services.storage import InMemoryStore

router = APIRouter(tags=["posts"])


@router.post(
    "/posts",
    status_code=201,
    response_model=Post,
    responses={404: {"model": ErrorResponse}},
)
async def create_post(
    payload: dict[str, Any] = Body(default={}),
    events: EventEmitter = Depends(get_events),
    store: InMemoryStore = Depends(get_store),
) -> Post | JSONResponse:
    user_id = payload.get("userId")

    if not store.has_user(user_id):
        events.warn("POST_CREATION_FAILED", "Post creation failed - User not found", userId=user_id)
        return JSONResponse(status_code=404, content={"error": "User not found"})

    post = store.create_post(user_id=user_id, title=payload.get("title"), content=payload.get("content"))
    events.info("POST_CREATED", "New post created", postId=post.id, userId=user_id)
    return post
