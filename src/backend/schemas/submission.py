"""
Submission-related Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PhotoSchema(BaseModel):
    """Photo reference; URLs come from the upload pipeline."""

    id: Optional[str] = None
    url: str = Field(..., min_length=1)
    is_featured: bool = False

    model_config = {"from_attributes": True}


class SubmissionCreate(BaseModel):
    """Schema for registering a display."""

    address: str = Field(..., min_length=1, max_length=500)
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    lat: float = 0.0
    lng: float = 0.0
    photos: list[PhotoSchema] = Field(default_factory=list)
    description: Optional[str] = None


class SubmissionUpdate(BaseModel):
    """Partial update of descriptive fields. Vote tallies cannot be set."""

    address: Optional[str] = Field(None, min_length=1, max_length=500)
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    lat: Optional[float] = None
    lng: Optional[float] = None
    photos: Optional[list[PhotoSchema]] = None
    description: Optional[str] = None


class SubmissionResponse(BaseModel):
    """Submission with its vote tallies."""

    id: str
    user_id: str
    address: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    lat: float
    lng: float
    photos: list[PhotoSchema] = Field(default_factory=list)
    featured_photo: Optional[PhotoSchema] = Field(None, description="Featured photo, or the first one")
    description: Optional[str] = None
    votes: dict[str, int]
    total_votes: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SubmissionListResponse(BaseModel):
    """List of submissions."""

    submissions: list[SubmissionResponse]
    total: int


class CategoryInfo(BaseModel):
    """A voting category tag and its award title."""

    tag: str
    label: str


class DescriptionRequest(BaseModel):
    """Ask for a suggested display description."""

    address: str = Field(..., min_length=1, max_length=500)


class DescriptionResponse(BaseModel):
    description: str
