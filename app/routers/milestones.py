"""
Milestones router.

GET  /users/{user_id}/milestones             — projections, filterable
POST /users/{user_id}/milestones             — custom milestone
POST /users/{user_id}/milestones/initialize  — seed the default catalog
POST /users/{user_id}/milestones/progress    — explicit progress update
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.models.milestone import MilestoneType
from app.routers.serializers import milestone_to_response, outcome_to_response
from app.schemas.common import INVALID_STATE, NOT_FOUND, VALIDATION
from app.schemas.milestones import (
    MilestoneCreateRequest,
    MilestoneInitializeResponse,
    MilestoneListResponse,
    MilestoneProgressRequest,
    MilestoneProgressResponse,
    MilestoneResponse,
)
from app.services import coaching, milestone_tracker, users
from app.services.milestone_tracker import MilestoneStatusFilter, project

router = APIRouter(prefix="/users/{user_id}/milestones", tags=["milestones"])


@router.get(
    "",
    response_model=MilestoneListResponse,
    summary="List milestones with progress",
    responses={**NOT_FOUND},
)
def list_milestones(
    user_id: int,
    status_filter: MilestoneStatusFilter = Query(
        default=MilestoneStatusFilter.all,
        alias="status",
        description='"all" | "achieved" | "in_progress" | "almost_complete"',
    ),
    milestone_type: Optional[MilestoneType] = Query(default=None),
    db: Session = Depends(get_db),
):
    users.get_user(db, user_id)
    items = milestone_tracker.list_milestones(db, user_id, status_filter, milestone_type)
    return MilestoneListResponse(
        total=len(items),
        achieved_count=milestone_tracker.achieved_count(db, user_id),
        items=[milestone_to_response(p) for p in items],
    )


@router.post(
    "",
    response_model=MilestoneResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a custom milestone",
    responses={**NOT_FOUND, **INVALID_STATE, **VALIDATION},
)
def create_milestone(user_id: int, body: MilestoneCreateRequest, db: Session = Depends(get_db)):
    milestone = coaching.create_custom_milestone(
        db,
        user_id,
        name=body.name,
        milestone_type=body.milestone_type,
        target_value=body.target_value,
        description=body.description,
    )
    return milestone_to_response(project(milestone))


@router.post(
    "/initialize",
    response_model=MilestoneInitializeResponse,
    summary="Seed the default milestone catalog",
    responses={**NOT_FOUND},
)
def initialize(user_id: int, db: Session = Depends(get_db)):
    """Safe to repeat: only catalog entries the user lacks are created."""
    created = coaching.initialize_milestones(db, user_id)
    return MilestoneInitializeResponse(
        created=len(created),
        items=[milestone_to_response(project(m)) for m in created],
    )


@router.post(
    "/progress",
    response_model=MilestoneProgressResponse,
    summary="Update progress for one milestone type",
    responses={**NOT_FOUND, **INVALID_STATE, **VALIDATION},
)
def progress(user_id: int, body: MilestoneProgressRequest, db: Session = Depends(get_db)):
    """Negative values are a 409. Achieved milestones do not change."""
    result = coaching.update_milestone_progress(
        db, user_id, body.milestone_type, body.value, body.mode
    )
    items = milestone_tracker.list_milestones(db, user_id, milestone_type=body.milestone_type)
    return MilestoneProgressResponse(
        achieved=[milestone_to_response(project(m)) for m in result.achieved],
        items=[milestone_to_response(p) for p in items],
        message=outcome_to_response(result.message),
    )
