from pydantic import BaseModel, Field
from enum import Enum


class SubmissionStatus(str, Enum):
    """Submission status"""
    PENDING = "pending"  # Waiting for the winner declaration
    WINNER = "winner"  # Chosen by the contest creator
    NOT_SELECTED = "not_selected"  # Another submission won


class SubmissionCreate(BaseModel):
    """Schema for submitting (or re-submitting) a task link"""
    submissionLink: str = Field(..., min_length=5, max_length=2000)
