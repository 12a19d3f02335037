"""
Users router.

POST /users            — create user (seeds behavior profile + default milestones)
GET  /users/{user_id}  — lookup
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.routers.serializers import user_to_response
from app.schemas.common import NOT_FOUND, VALIDATION
from app.schemas.users import UserCreateRequest, UserResponse
from app.services import coaching, users

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    responses={**VALIDATION},
)
def create_user(body: UserCreateRequest, db: Session = Depends(get_db)):
    """Creates the user, an empty behavior profile (tone `neutral`) and the default milestone catalog."""
    user = coaching.register_user(db, body.display_name, body.goal_days_per_week)
    return user_to_response(user)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user",
    responses={**NOT_FOUND},
)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return user_to_response(users.get_user(db, user_id))
