"""
Ledger store interface.

The ledger holds two containers, users and submissions, and offers one
atomic primitive: a read-modify-write transaction scoped to exactly one
user record and one submission record.

Backends:
- InMemoryLedgerStore (db.memory_ledger): per-key asyncio locks, for tests
  and local runs
- SqlLedgerStore (db.sql_ledger): SQLAlchemy async with row-version
  compare-and-swap, for durable deployments

Transaction contract:
- read_user()/read_submission() return detached copies (None if absent)
- write_user()/write_submission() stage the vote-ledger fields only:
  votes_remaining_per_address for users, votes/total_votes for submissions
- leaving the context normally commits both staged writes or neither
- leaving it with an exception rolls back
- a commit that loses a race raises LedgerConflictError
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Optional

from models.documents import SubmissionDocument, UserDocument

# Container names
USERS_CONTAINER = "users"
SUBMISSIONS_CONTAINER = "submissions"


def ledger_key(container: str, item_id: str) -> str:
    """Logical key of a record, e.g. users/abc."""
    return f"{container}/{item_id}"


class LedgerTransaction(ABC):
    """A read-modify-write unit over one user and one submission."""

    def __init__(self, user_id: str, submission_id: str):
        self.user_id = user_id
        self.submission_id = submission_id
        self.staged_user: Optional[UserDocument] = None
        self.staged_submission: Optional[SubmissionDocument] = None

    @abstractmethod
    async def read_user(self) -> Optional[UserDocument]:
        """Read the user this transaction is scoped to."""

    @abstractmethod
    async def read_submission(self) -> Optional[SubmissionDocument]:
        """Read the submission this transaction is scoped to."""

    def write_user(self, user: UserDocument) -> None:
        """Stage the user's vote allowance for commit."""
        if user.id != self.user_id:
            raise ValueError(f"Transaction is scoped to user {self.user_id}, not {user.id}")
        self.staged_user = user

    def write_submission(self, submission: SubmissionDocument) -> None:
        """Stage the submission's tallies for commit."""
        if submission.id != self.submission_id:
            raise ValueError(
                f"Transaction is scoped to submission {self.submission_id}, not {submission.id}"
            )
        self.staged_submission = submission


class LedgerStore(ABC):
    """Storage for users and submissions with atomic vote transactions."""

    name: str = "ledger"

    async def init(self) -> None:
        """Prepare the backend (create tables, open pools)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    def transaction(
        self, user_id: str, submission_id: str
    ) -> AbstractAsyncContextManager[LedgerTransaction]:
        """Open an atomic transaction over users/{user_id} and submissions/{submission_id}."""

    # ========================================================================
    # Users
    # ========================================================================

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserDocument]:
        """Point read of a user."""

    @abstractmethod
    async def get_or_create_user(self, user: UserDocument) -> tuple[UserDocument, bool]:
        """Insert the user unless one with the same id exists.

        Returns the stored user and whether it was created by this call.
        """

    # ========================================================================
    # Submissions
    # ========================================================================

    @abstractmethod
    async def get_submission(self, submission_id: str) -> Optional[SubmissionDocument]:
        """Point read of a submission."""

    @abstractmethod
    async def create_submission(self, submission: SubmissionDocument) -> SubmissionDocument:
        """Insert a new submission."""

    @abstractmethod
    async def update_submission_fields(
        self, submission_id: str, fields: dict[str, Any]
    ) -> Optional[SubmissionDocument]:
        """Merge descriptive fields into a submission without touching its tallies.

        Returns the updated submission, or None if it does not exist.
        """

    @abstractmethod
    async def delete_submission(self, submission_id: str) -> bool:
        """Delete a submission. Returns False if it did not exist."""

    @abstractmethod
    async def list_submissions(self) -> list[SubmissionDocument]:
        """All submissions, oldest first."""
