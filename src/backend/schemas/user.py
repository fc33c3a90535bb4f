"""
User-related Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Profile details supplied on login.

    Only used when the user record is created on first login.
    """

    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, max_length=255)
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)


class UserResponse(BaseModel):
    """User snapshot including per-submission remaining votes."""

    id: str
    name: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    votes_remaining_per_address: dict[str, int] = Field(
        default_factory=dict,
        description="submission_id -> remaining votes; missing entries mean the full allowance",
    )
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    """Result of a login call."""

    user: UserResponse
    created: bool = False
