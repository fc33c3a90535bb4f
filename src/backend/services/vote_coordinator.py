"""
Vote coordinator.

Runs every vote as one ledger transaction:

1. Open a transaction on users/{user_id} and submissions/{submission_id}
2. Read both records (NotFoundError if either is missing)
3. Ask the vote policy for a decision
4. Stage the new allowance and tallies, commit

A commit that loses a race (LedgerConflictError) restarts the whole
read-decide-write cycle, never just the write, because the decision depends
on what was read. Retries are bounded; once exhausted the caller gets a
VoteContentionError it may retry later.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from core.config import settings
from core.exceptions import InvalidArgumentError, LedgerConflictError, NotFoundError, VoteContentionError
from db.ledger import LedgerStore
from models.documents import SubmissionDocument, UserDocument, VotingCategory
from services.vote_policy import CAST, RETRACT, RejectionReason, decide_vote, validate_delta

logger = structlog.get_logger(__name__)


class VoteStatus(str, Enum):
    """Whether a vote changed the ledger."""

    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass
class VoteResult:
    """Post-transaction view of the user and submission a vote touched."""

    status: VoteStatus
    user: UserDocument
    submission: SubmissionDocument
    category: VotingCategory
    delta: int
    reason: Optional[RejectionReason] = None
    attempts: int = 1

    @property
    def applied(self) -> bool:
        return self.status == VoteStatus.APPLIED

    @property
    def rejected(self) -> bool:
        return self.status == VoteStatus.REJECTED


def parse_category(category: "str | VotingCategory") -> VotingCategory:
    """Resolve a category tag, raising InvalidArgumentError for unknown tags."""
    try:
        return VotingCategory.parse(category)
    except ValueError as e:
        raise InvalidArgumentError("Unknown voting category", {"category": category}) from e


class VoteCoordinator:
    """Applies casts and retractions atomically against a ledger store."""

    def __init__(
        self,
        ledger: LedgerStore,
        max_votes: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_backoff_seconds: Optional[float] = None,
    ):
        self.ledger = ledger
        self.max_votes = max_votes if max_votes is not None else settings.MAX_VOTES_PER_ADDRESS
        self.max_retries = max_retries if max_retries is not None else settings.VOTE_MAX_RETRIES
        self.retry_backoff_seconds = (
            retry_backoff_seconds if retry_backoff_seconds is not None else settings.VOTE_RETRY_BACKOFF_SECONDS
        )

    async def apply_vote(
        self,
        user_id: str,
        submission_id: str,
        category: "str | VotingCategory",
        delta: int,
    ) -> VoteResult:
        """
        Cast (+1) or retract (-1) one vote.

        Returns:
            VoteResult with status APPLIED and the updated snapshots, or status
            REJECTED with the unchanged snapshots when the policy declines.

        Raises:
            InvalidArgumentError: unknown category, delta not +1/-1, empty ids
            NotFoundError: user or submission does not exist
            VoteContentionError: every retry lost a race
            StorageUnavailableError: the ledger could not be reached
        """
        if not user_id or not submission_id:
            raise InvalidArgumentError(
                "user_id and submission_id are required",
                {"user_id": user_id, "submission_id": submission_id},
            )
        voting_category = parse_category(category)
        validate_delta(delta)

        attempt = 0
        while True:
            attempt += 1
            try:
                result = await self._run_transaction(user_id, submission_id, voting_category, delta)
            except VoteContentionError:
                raise
            except LedgerConflictError as e:
                if attempt > self.max_retries:
                    logger.error(
                        "vote_retries_exhausted",
                        user_id=user_id,
                        submission_id=submission_id,
                        category=voting_category.value,
                        attempts=attempt,
                    )
                    raise VoteContentionError(
                        "Vote could not be applied due to contention, try again",
                        {"submission_id": submission_id, "attempts": attempt},
                    ) from e
                logger.warning(
                    "vote_conflict_retrying",
                    user_id=user_id,
                    submission_id=submission_id,
                    attempt=attempt,
                    error=str(e),
                )
                await asyncio.sleep(self.retry_backoff_seconds * attempt)
                continue

            result.attempts = attempt
            if result.applied:
                logger.info(
                    "vote_applied",
                    user_id=user_id,
                    submission_id=submission_id,
                    category=voting_category.value,
                    delta=delta,
                    total_votes=result.submission.total_votes,
                )
            else:
                logger.info(
                    "vote_rejected",
                    user_id=user_id,
                    submission_id=submission_id,
                    category=voting_category.value,
                    delta=delta,
                    reason=result.reason.value if result.reason else None,
                )
            return result

    async def _run_transaction(
        self,
        user_id: str,
        submission_id: str,
        category: VotingCategory,
        delta: int,
    ) -> VoteResult:
        async with self.ledger.transaction(user_id, submission_id) as txn:
            user = await txn.read_user()
            if user is None:
                raise NotFoundError("User", user_id)
            submission = await txn.read_submission()
            if submission is None:
                raise NotFoundError("Submission", submission_id)

            decision = decide_vote(
                remaining=user.votes_remaining_per_address.get(submission_id),
                category_votes=submission.votes.get(category.value),
                delta=delta,
                max_votes=self.max_votes,
            )
            if not decision.allowed:
                return VoteResult(
                    status=VoteStatus.REJECTED,
                    user=user,
                    submission=submission,
                    category=category,
                    delta=delta,
                    reason=decision.reason,
                )

            user.votes_remaining_per_address[submission_id] = decision.remaining
            submission.votes[category.value] = decision.category_votes
            submission.total_votes += decision.total_delta
            txn.write_user(user)
            txn.write_submission(submission)

        # Commit has run; staged documents carry the new versions
        return VoteResult(
            status=VoteStatus.APPLIED,
            user=user,
            submission=submission,
            category=category,
            delta=delta,
        )

    async def cast_vote(self, user_id: str, submission_id: str, category: "str | VotingCategory") -> VoteResult:
        """Spend one vote of the user's allowance on a category."""
        return await self.apply_vote(user_id, submission_id, category, CAST)

    async def retract_vote(self, user_id: str, submission_id: str, category: "str | VotingCategory") -> VoteResult:
        """Take one vote back from a category."""
        return await self.apply_vote(user_id, submission_id, category, RETRACT)

    async def remaining_votes(self, user_id: str, submission_id: str) -> int:
        """Remaining allowance of a user on a submission (max when never voted)."""
        user = await self.ledger.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        if await self.ledger.get_submission(submission_id) is None:
            raise NotFoundError("Submission", submission_id)
        return user.remaining_for(submission_id, self.max_votes)
