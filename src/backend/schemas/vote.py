"""
Vote-related Pydantic schemas.

A rejected vote is a normal response (status "rejected"), not an error.
"""

from typing import Optional

from pydantic import BaseModel, Field

from schemas.submission import SubmissionResponse
from schemas.user import UserResponse


class VoteCreate(BaseModel):
    """Schema for casting (+1) or retracting (-1) a vote."""

    submission_id: str = Field(..., min_length=1)
    category: str = Field(..., description="Category tag, e.g. LIGHTS")
    delta: int = Field(1, description="+1 to cast, -1 to retract")


class VoteOutcome(BaseModel):
    """Result of a vote with the post-transaction user and submission."""

    status: str = Field(..., description="applied or rejected")
    reason: Optional[str] = None
    message: str
    category: str
    delta: int
    user: UserResponse
    submission: SubmissionResponse


class VoteStatus(BaseModel):
    """The caller's remaining allowance on a submission."""

    submission_id: str
    votes_remaining: int
    max_votes: int
