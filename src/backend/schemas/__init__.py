"""Schemas module initialization."""

from schemas.submission import (
    CategoryInfo,
    PhotoSchema,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionUpdate,
)
from schemas.user import LoginRequest, LoginResponse, UserResponse
from schemas.vote import VoteCreate, VoteOutcome, VoteStatus

__all__ = [
    "CategoryInfo",
    "PhotoSchema",
    "SubmissionCreate",
    "SubmissionListResponse",
    "SubmissionResponse",
    "SubmissionUpdate",
    "LoginRequest",
    "LoginResponse",
    "UserResponse",
    "VoteCreate",
    "VoteOutcome",
    "VoteStatus",
]
