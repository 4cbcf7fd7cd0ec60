from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from app.models.schemas import Post, User


class InMemoryStore:
    """Process-local user/post maps. Not thread-safe, not persistent."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.posts: dict[str, Post] = {}

    def create_user(self, username: Any, email: Any, age: Any = None) -> User:
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            email=email,
            age=age,
            created_at=datetime.now(timezone.utc),
        )
        self.users[user.id] = user
        return user

    def has_user(self, user_id: Any) -> bool:
        return isinstance(user_id, str) and user_id in self.users

    def create_post(self, user_id: str, title: Any = None, content: Any = None) -> Post:
        post = Post(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            content=content,
            created_at=datetime.now(timezone.utc),
        )
        self.posts[post.id] = post
        return post
