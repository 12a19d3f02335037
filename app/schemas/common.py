"""
Shared schema primitives used across the API.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class ErrorDetail(BaseModel):
    """A single field-level validation error."""
    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


# Reused in router `responses=` declarations.
NOT_FOUND = {404: {"model": ErrorResponse, "description": "User or resource not found."}}
INVALID_STATE = {409: {"model": ErrorResponse, "description": "Conflicts with stored state; nothing written."}}
VALIDATION = {422: {"model": ErrorResponse, "description": "Every invalid field, as a list and a field map."}}


def enum_value(v) -> str:
    """Extract bare string value from a str-enum or plain str."""
    return v.value if hasattr(v, "value") else str(v)


def iso(v) -> Optional[str]:
    return v.isoformat() if v is not None else None
