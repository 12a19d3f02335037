"""
User schemas.

POST /users            → UserCreateRequest → UserResponse
GET  /users/{user_id}  → UserResponse
"""
from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from app.core.config import settings


class UserCreateRequest(BaseModel):
    display_name: Annotated[str, Field(
        min_length=1,
        max_length=100,
        description="Shown in coaching messages (first word only).",
        examples=["Alex Rivera"],
    )]
    goal_days_per_week: int = Field(
        default=settings.DEFAULT_GOAL_DAYS_PER_WEEK, ge=1, le=7,
        description="Training days per week the user is aiming for.",
    )

    @field_validator("display_name", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v: str) -> str:
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("display_name must not be empty after stripping whitespace")
        return stripped


class UserResponse(BaseModel):
    id: int
    display_name: str
    goal_days_per_week: int
    created_at: str
