from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    """User role types"""
    USER = "user"
    CREATOR = "creator"
    ADMIN = "admin"


def empty_user_actions() -> dict:
    """Participant counters, zero-initialized"""
    return {"contestsParticipated": 0, "contestsWon": 0, "totalWinnings": 0}


def empty_creator_actions() -> dict:
    """Creator counters, zero-initialized"""
    return {"contestsCreated": 0, "contestsCompleted": 0, "totalPrizePaid": 0}


def empty_admin_actions() -> dict:
    """Admin counters, zero-initialized"""
    return {"approved": 0, "rejected": 0, "deleted": 0}


class UserCreate(BaseModel):
    """Schema for self-registration"""
    email: EmailStr
    name: Optional[str] = Field(None, max_length=100)
    image: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class ProfileUpdate(BaseModel):
    """Self-service profile fields"""
    name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = None


class RoleUpdate(BaseModel):
    """Admin role override"""
    role: UserRole


class UserInDB(BaseModel):
    """Schema for user stored in database"""
    email: str
    name: Optional[str] = None
    bio: Optional[str] = None
    image: Optional[str] = None
    role: UserRole = UserRole.USER
    userActions: dict = Field(default_factory=empty_user_actions)
    creatorActions: dict = Field(default_factory=empty_creator_actions)
    adminActions: dict = Field(default_factory=empty_admin_actions)
    createdAt: datetime = Field(default_factory=datetime.utcnow)
