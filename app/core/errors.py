"""
Custom exception hierarchy for the BRIX coaching API.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages, and an `ErrorKind`
so callers inside the process can tell a lookup failure from a rejected
input without matching on classes.
"""
from __future__ import annotations

import enum
import logging
from datetime import date
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    not_found = "not_found"
    invalid_state = "invalid_state"
    validation_failure = "validation_failure"
    internal = "internal"


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class BrixException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    kind: ErrorKind = ErrorKind.internal

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(BrixException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    kind = ErrorKind.not_found

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} {identifier} not found.",
            details={"resource": resource, "id": identifier},
        )


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        super().__init__("User", user_id)


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: int):
        super().__init__("WorkoutSession", session_id)


class CheckInNotFoundError(NotFoundError):
    def __init__(self, day: date):
        super().__init__("DailyCheckIn", str(day))


class InvalidStateError(BrixException):
    """Input is well-formed but conflicts with stored state. Nothing was written."""
    http_status = status.HTTP_409_CONFLICT
    code = "INVALID_STATE"
    kind = ErrorKind.invalid_state


class FutureDateError(InvalidStateError):
    def __init__(self, day: date, today: date):
        super().__init__(
            message=f"Cannot record {day}: it is after today ({today}).",
            details={"day": str(day), "today": str(today)},
        )


class BrickConflictError(InvalidStateError):
    def __init__(self, day: date, existing: str, requested: str):
        super().__init__(
            message=f"Brick for {day} is already recorded as {existing}.",
            details={"day": str(day), "existing": existing, "requested": requested},
        )


class SessionAlreadyCompletedError(InvalidStateError):
    def __init__(self, session_id: int):
        super().__init__(
            message=f"Workout session {session_id} is already completed.",
            details={"session_id": session_id},
        )


class CheckInExistsError(InvalidStateError):
    def __init__(self, day: date):
        super().__init__(
            message=f"A check-in for {day} already exists.",
            details={"day": str(day)},
        )


class CheckInLockedError(InvalidStateError):
    def __init__(self, day: date, today: date):
        super().__init__(
            message=f"Only today's check-in can be changed; {day} is closed.",
            details={"day": str(day), "today": str(today)},
        )


class NegativeProgressError(InvalidStateError):
    def __init__(self, value: int):
        super().__init__(
            message=f"Milestone progress must not be negative (got {value}).",
            details={"value": value},
        )


class ValidationFailure(BrixException):
    """All field problems found in one input, reported together."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"
    kind = ErrorKind.validation_failure

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__(
            message="Request validation failed.",
            details={
                "errors": [
                    {"field": f, "message": m, "type": "value_error"}
                    for f, m in self.errors.items()
                ],
                "fields": self.errors,
            },
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def brix_exception_handler(request: Request, exc: BrixException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with every field error, not just the first."""
    field_errors = []
    fields: dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        field_errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
        fields.setdefault(field, error["msg"])
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors, "fields": fields},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
