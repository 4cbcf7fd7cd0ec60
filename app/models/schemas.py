from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: Any
    email: Any
    age: int | float | str | None = None
    created_at: datetime = Field(serialization_alias="createdAt")


class Post(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(serialization_alias="userId")
    title: Any = None
    content: Any = None
    created_at: datetime = Field(serialization_alias="createdAt")
    likes: int = 0


class ValidationErrorResponse(BaseModel):
    errors: list[str]


class ErrorResponse(BaseModel):
    error: str


class PerformanceResult(BaseModel):
    scenario: str
    duration: str
    result: str = "Success"


class SimulatedErrorResponse(BaseModel):
    error: str = "Simulated error"
    type: str
    message: str


class HealthResponse(BaseModel):
    uptime: float
    timestamp: str
    memory: dict[str, float]
    cpu: dict[str, float]
