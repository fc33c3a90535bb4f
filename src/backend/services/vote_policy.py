"""
Vote policy: decides whether a cast or retraction is allowed.

Pure functions with no I/O. Business-rule outcomes are returned as data;
only malformed input raises.

Rules:
- cast (+1): allowed while the user still has allowance on the submission
- retract (-1): allowed while the user has spent allowance AND the category
  has at least one vote to take back

Retraction is checked against the aggregate allowance only. A user can
retract from a category they never voted for as long as both conditions
hold, because votes are not attributed to users per category.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.exceptions import InvalidArgumentError

CAST = 1
RETRACT = -1


class RejectionReason(str, Enum):
    """Why the policy declined a vote."""

    NO_VOTES_REMAINING = "no_votes_remaining"
    NOTHING_TO_RETRACT = "nothing_to_retract"


@dataclass(frozen=True)
class VoteDecision:
    """Outcome of evaluating one vote against the current ledger values."""

    allowed: bool
    remaining: int
    category_votes: int
    total_delta: int
    reason: Optional[RejectionReason] = None


def validate_delta(delta: int) -> int:
    """Accept only +1 (cast) or -1 (retract)."""
    if isinstance(delta, bool) or delta not in (CAST, RETRACT):
        raise InvalidArgumentError("Vote delta must be +1 or -1", {"delta": delta})
    return delta


def decide_vote(
    remaining: Optional[int],
    category_votes: Optional[int],
    delta: int,
    max_votes: int,
) -> VoteDecision:
    """
    Evaluate a vote.

    Args:
        remaining: User's remaining allowance for the submission, None if the
            user never voted on it (treated as max_votes)
        category_votes: Current count for the category, None treated as 0
        delta: +1 to cast, -1 to retract
        max_votes: Allowance ceiling per user per submission

    Returns:
        VoteDecision with the resulting remaining allowance and category count.
        On rejection the values are unchanged and total_delta is 0.

    Raises:
        InvalidArgumentError: delta is not +1/-1 or the inputs are out of range
    """
    validate_delta(delta)
    if max_votes < 1:
        raise InvalidArgumentError("max_votes must be positive", {"max_votes": max_votes})

    current_remaining = max_votes if remaining is None else remaining
    current_votes = 0 if category_votes is None else category_votes

    if not 0 <= current_remaining <= max_votes:
        raise InvalidArgumentError(
            "Remaining allowance out of range",
            {"remaining": current_remaining, "max_votes": max_votes},
        )
    if current_votes < 0:
        raise InvalidArgumentError("Category votes cannot be negative", {"category_votes": current_votes})

    if delta == CAST:
        if current_remaining > 0:
            return VoteDecision(
                allowed=True,
                remaining=current_remaining - 1,
                category_votes=current_votes + 1,
                total_delta=1,
            )
        return VoteDecision(
            allowed=False,
            remaining=current_remaining,
            category_votes=current_votes,
            total_delta=0,
            reason=RejectionReason.NO_VOTES_REMAINING,
        )

    if current_remaining < max_votes and current_votes > 0:
        return VoteDecision(
            allowed=True,
            remaining=current_remaining + 1,
            category_votes=current_votes - 1,
            total_delta=-1,
        )
    return VoteDecision(
        allowed=False,
        remaining=current_remaining,
        category_votes=current_votes,
        total_delta=0,
        reason=RejectionReason.NOTHING_TO_RETRACT,
    )
