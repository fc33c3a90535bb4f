"""
Schema converter functions.

Centralized helpers for converting ledger documents and service results
to API schemas.
"""

from models.documents import PhotoDocument, SubmissionDocument, UserDocument
from schemas.submission import PhotoSchema, SubmissionResponse
from schemas.user import UserResponse
from schemas.vote import VoteOutcome
from services.vote_coordinator import VoteResult
from services.vote_policy import RejectionReason

REJECTION_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.NO_VOTES_REMAINING: "No votes remaining for this address",
    RejectionReason.NOTHING_TO_RETRACT: "There is no vote to take back in this category",
}


def user_document_to_schema(user: UserDocument) -> UserResponse:
    """Convert a UserDocument to its API schema."""
    return UserResponse(
        id=user.id,
        name=user.name,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        address=user.address,
        votes_remaining_per_address=dict(user.votes_remaining_per_address),
        created_at=user.created_at,
    )


def _photo_to_schema(photo: PhotoDocument) -> PhotoSchema:
    return PhotoSchema(id=photo.id, url=photo.url, is_featured=photo.is_featured)


def submission_document_to_schema(submission: SubmissionDocument) -> SubmissionResponse:
    """Convert a SubmissionDocument to its API schema."""
    featured = submission.featured_photo
    return SubmissionResponse(
        id=submission.id,
        user_id=submission.user_id,
        address=submission.address,
        first_name=submission.first_name,
        last_name=submission.last_name,
        lat=submission.lat,
        lng=submission.lng,
        photos=[_photo_to_schema(p) for p in submission.photos],
        featured_photo=_photo_to_schema(featured) if featured is not None else None,
        description=submission.description,
        votes=dict(submission.votes),
        total_votes=submission.total_votes,
        created_at=submission.created_at,
        updated_at=submission.updated_at,
    )


def vote_result_to_outcome(result: VoteResult) -> VoteOutcome:
    """Convert a coordinator VoteResult to the API response."""
    if result.applied:
        message = "Vote recorded" if result.delta > 0 else "Vote retracted"
    elif result.reason is not None:
        message = REJECTION_MESSAGES[result.reason]
    else:
        message = "Vote not applied"
    return VoteOutcome(
        status=result.status.value,
        reason=result.reason.value if result.reason else None,
        message=message,
        category=result.category.value,
        delta=result.delta,
        user=user_document_to_schema(result.user),
        submission=submission_document_to_schema(result.submission),
    )
