from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime, timezone
from enum import Enum


class ContestStatus(str, Enum):
    """
    Contest moderation status - State Machine

    State Transitions:
    - PENDING -> APPROVED (admin approves)
    - PENDING -> REJECTED (admin rejects)

    A decided contest never returns to PENDING.
    """
    PENDING = "pending"  # Creator can edit/delete, not listed publicly
    APPROVED = "approved"  # Listed publicly, accepting registrations
    REJECTED = "rejected"  # Hidden, only an admin can delete it


class WinnerStatus(str, Enum):
    """Winner declaration state, one-way PENDING -> DECLARED"""
    PENDING = "pending"
    DECLARED = "declared"


class ContestDecision(str, Enum):
    """Outcomes an admin may choose for a pending contest"""
    APPROVED = "approved"
    REJECTED = "rejected"


def to_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC, the way the driver returns them"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def pending_winner() -> dict:
    return {
        "status": WinnerStatus.PENDING.value,
        "name": None,
        "email": None,
        "image": None,
        "submissionId": None,
        "declaredAt": None
    }


class ContestCreate(BaseModel):
    """Schema for creating a contest"""
    name: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10)
    image: Optional[str] = None
    contestType: str = Field(..., min_length=2, max_length=60)
    entryFee: float = Field(..., gt=0)
    prizeMoney: float = Field(..., gt=0)
    instructions: str = Field(..., min_length=5)
    deadline: datetime

    @field_validator("deadline")
    @classmethod
    def normalize_deadline(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class ContestUpdate(ContestCreate):
    """
    Schema for editing a contest (only allowed in PENDING status).
    The editable field set is replaced as a whole.
    """


EDITABLE_FIELDS = (
    "name",
    "image",
    "description",
    "contestType",
    "prizeMoney",
    "entryFee",
    "instructions",
    "deadline",
)


class DecisionRequest(BaseModel):
    """Admin moderation decision"""
    status: ContestDecision
