"""Ledger models module."""

from models.documents import (
    CATEGORY_LABELS,
    PhotoDocument,
    SubmissionDocument,
    UserDocument,
    VotingCategory,
    empty_tally,
)
from models.ledger_tables import SubmissionRow, UserRow

__all__ = [
    "CATEGORY_LABELS",
    "PhotoDocument",
    "SubmissionDocument",
    "UserDocument",
    "VotingCategory",
    "empty_tally",
    "SubmissionRow",
    "UserRow",
]
