"""
Vote endpoints.

Each user may cast up to MAX_VOTES_PER_ADDRESS votes per submission, spread
across the award categories, and take votes back. A vote the policy
declines comes back as a normal response with status "rejected".
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_vote_coordinator
from models.documents import UserDocument
from schemas.converters import vote_result_to_outcome
from schemas.vote import VoteCreate, VoteOutcome, VoteStatus
from services.vote_coordinator import VoteCoordinator
from services.vote_policy import RETRACT

router = APIRouter()


@router.post("", response_model=VoteOutcome)
async def apply_vote(
    vote_data: VoteCreate,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    coordinator: VoteCoordinator = Depends(get_vote_coordinator),
) -> VoteOutcome:
    """
    Cast (+1) or retract (-1) a vote on a submission.

    The allowance check and both tally updates happen in one ledger
    transaction; the response carries the updated user and submission.
    """
    result = await coordinator.apply_vote(
        current_user.id,
        vote_data.submission_id,
        vote_data.category,
        vote_data.delta,
    )
    return vote_result_to_outcome(result)


@router.delete("/{submission_id}/{category}", response_model=VoteOutcome)
async def retract_vote(
    submission_id: str,
    category: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    coordinator: VoteCoordinator = Depends(get_vote_coordinator),
) -> VoteOutcome:
    """Take one vote back from a category."""
    result = await coordinator.apply_vote(current_user.id, submission_id, category, RETRACT)
    return vote_result_to_outcome(result)


@router.get("/status/{submission_id}", response_model=VoteStatus)
async def check_vote_status(
    submission_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    coordinator: VoteCoordinator = Depends(get_vote_coordinator),
) -> VoteStatus:
    """How many votes the current user has left on a submission."""
    return VoteStatus(
        submission_id=submission_id,
        votes_remaining=await coordinator.remaining_votes(current_user.id, submission_id),
        max_votes=coordinator.max_votes,
    )
