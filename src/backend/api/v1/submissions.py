"""
Submission endpoints.

Anyone can browse submissions and the leaderboard; creating, editing and
deleting require a logged-in user, and edits/deletes only work for the
submission's owner.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from api.deps import get_current_user, get_description_service, get_submission_registry
from models.documents import CATEGORY_LABELS, UserDocument
from schemas.converters import submission_document_to_schema
from schemas.submission import (
    CategoryInfo,
    DescriptionRequest,
    DescriptionResponse,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionUpdate,
)
from services.description_service import DescriptionService
from services.submission_registry import SubmissionRegistry
from services.vote_coordinator import parse_category

router = APIRouter()
categories_router = APIRouter()


@categories_router.get("", response_model=list[CategoryInfo])
async def list_categories() -> list[CategoryInfo]:
    """All award categories."""
    return [CategoryInfo(tag=category.value, label=label) for category, label in CATEGORY_LABELS.items()]


@router.get("", response_model=SubmissionListResponse)
async def list_submissions(
    user_id: Optional[str] = Query(None, description="Only submissions owned by this user"),
    registry: SubmissionRegistry = Depends(get_submission_registry),
) -> SubmissionListResponse:
    """List all submissions (for the map view)."""
    submissions = await registry.list_submissions(owner_id=user_id)
    return SubmissionListResponse(
        submissions=[submission_document_to_schema(s) for s in submissions],
        total=len(submissions),
    )


@router.get("/leaderboard", response_model=SubmissionListResponse)
async def leaderboard(
    category: Optional[str] = Query(None, description="Category tag; omit to rank by total votes"),
    limit: int = Query(10, ge=1, le=100),
    registry: SubmissionRegistry = Depends(get_submission_registry),
) -> SubmissionListResponse:
    """Top submissions overall or in one category."""
    voting_category = parse_category(category) if category else None
    ranked = await registry.leaderboard(category=voting_category, limit=limit)
    return SubmissionListResponse(
        submissions=[submission_document_to_schema(s) for s in ranked],
        total=len(ranked),
    )


@router.post("/describe", response_model=DescriptionResponse)
async def describe_display(
    data: DescriptionRequest,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    service: DescriptionService = Depends(get_description_service),
) -> DescriptionResponse:
    """Suggest a festive description for a display address."""
    description = await service.generate_festive_description(data.address)
    return DescriptionResponse(description=description)


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    registry: SubmissionRegistry = Depends(get_submission_registry),
) -> SubmissionResponse:
    """Get one submission with its tallies."""
    submission = await registry.get_submission(submission_id)
    return submission_document_to_schema(submission)


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
    data: SubmissionCreate,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    registry: SubmissionRegistry = Depends(get_submission_registry),
) -> SubmissionResponse:
    """Register a display owned by the current user."""
    submission = await registry.create_submission(
        current_user.id,
        data.address,
        first_name=data.first_name,
        last_name=data.last_name,
        lat=data.lat,
        lng=data.lng,
        photos=[p.model_dump(exclude_none=True) for p in data.photos],
        description=data.description,
    )
    return submission_document_to_schema(submission)


@router.patch("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    submission_id: str,
    data: SubmissionUpdate,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    registry: SubmissionRegistry = Depends(get_submission_registry),
) -> SubmissionResponse:
    """Edit descriptive fields of one of the current user's submissions."""
    fields = data.model_dump(exclude_unset=True)
    if "photos" in fields and fields["photos"] is not None:
        fields["photos"] = [{k: v for k, v in p.items() if v is not None} for p in fields["photos"]]
    submission = await registry.update_submission(submission_id, current_user.id, fields)
    return submission_document_to_schema(submission)


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(
    submission_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    registry: SubmissionRegistry = Depends(get_submission_registry),
) -> None:
    """Delete one of the current user's submissions."""
    await registry.delete_submission(submission_id, current_user.id)
