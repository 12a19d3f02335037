"""
Milestone schemas.

GET  /users/{id}/milestones             → MilestoneListResponse
POST /users/{id}/milestones             → MilestoneCreateRequest   → MilestoneResponse
POST /users/{id}/milestones/initialize  → MilestoneInitializeResponse
POST /users/{id}/milestones/progress    → MilestoneProgressRequest → MilestoneProgressResponse
"""
from __future__ import annotations

from typing import Annotated, Optional

from pydantic import BaseModel, Field

from app.models.milestone import MilestoneType
from app.schemas.messages import ComposeResponse
from app.services.milestone_tracker import ProgressMode


class MilestoneResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    milestone_type: str
    target_value: int
    current_value: int
    is_achieved: bool
    achieved_at: Optional[str] = None
    progress_percentage: int = Field(ge=0, le=100)
    remaining_value: int
    almost_complete: bool
    in_progress: bool


class MilestoneListResponse(BaseModel):
    total: int
    achieved_count: int
    items: list[MilestoneResponse]


class MilestoneCreateRequest(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=100, examples=["First 5K week"])]
    description: Optional[str] = Field(default=None, max_length=255)
    milestone_type: MilestoneType
    target_value: int = Field(ge=1, description="Must be positive.")


class MilestoneInitializeResponse(BaseModel):
    created: int
    items: list[MilestoneResponse]


class MilestoneProgressRequest(BaseModel):
    milestone_type: MilestoneType
    value: int = Field(description="Increment or absolute value; negative values are rejected.")
    mode: ProgressMode = ProgressMode.increment


class MilestoneProgressResponse(BaseModel):
    achieved: list[MilestoneResponse]
    items: list[MilestoneResponse]
    message: Optional[ComposeResponse] = None
