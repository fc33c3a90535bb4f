"""
In-memory ledger store.

Pessimistic per-key locking: a transaction holds the asyncio locks of its
user and submission keys from first read to commit, acquired in sorted key
order. Transactions on disjoint keys never wait on each other. A key's lock
only exists while someone holds or waits for it.

Records are handed out as deep copies so callers can never mutate the
stored state outside a transaction.
"""

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from core.exceptions import LedgerConflictError
from db.ledger import (
    SUBMISSIONS_CONTAINER,
    USERS_CONTAINER,
    LedgerStore,
    LedgerTransaction,
    ledger_key,
)
from models.documents import SubmissionDocument, UserDocument

logger = logging.getLogger(__name__)


class _MemoryTransaction(LedgerTransaction):
    def __init__(self, store: "InMemoryLedgerStore", user_id: str, submission_id: str):
        super().__init__(user_id, submission_id)
        self._store = store
        self.read_versions: dict[str, int] = {}

    async def read_user(self) -> Optional[UserDocument]:
        user = self._store._users.get(self.user_id)
        if user is None:
            return None
        self.read_versions[USERS_CONTAINER] = user.version
        return user.model_copy(deep=True)

    async def read_submission(self) -> Optional[SubmissionDocument]:
        submission = self._store._submissions.get(self.submission_id)
        if submission is None:
            return None
        self.read_versions[SUBMISSIONS_CONTAINER] = submission.version
        return submission.model_copy(deep=True)


class InMemoryLedgerStore(LedgerStore):
    """Process-local ledger used by tests and local development."""

    name = "memory"

    def __init__(self) -> None:
        self._users: dict[str, UserDocument] = {}
        self._submissions: dict[str, SubmissionDocument] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # Holders and waiters per key; a lock is dropped when this reaches zero
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _key_lock(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]

    @asynccontextmanager
    async def transaction(self, user_id: str, submission_id: str) -> AsyncIterator[LedgerTransaction]:
        keys = sorted(
            {
                ledger_key(USERS_CONTAINER, user_id),
                ledger_key(SUBMISSIONS_CONTAINER, submission_id),
            }
        )
        async with AsyncExitStack() as stack:
            for key in keys:
                await stack.enter_async_context(self._key_lock(key))

            txn = _MemoryTransaction(self, user_id, submission_id)
            yield txn
            self._commit(txn)

    def _commit(self, txn: _MemoryTransaction) -> None:
        """Apply staged writes. Runs while both keys are locked."""
        user = self._users.get(txn.user_id) if txn.staged_user is not None else None
        submission = (
            self._submissions.get(txn.submission_id) if txn.staged_submission is not None else None
        )

        # Validate everything before applying anything
        if txn.staged_user is not None:
            if user is None or user.version != txn.read_versions.get(USERS_CONTAINER):
                raise LedgerConflictError(
                    "User changed during transaction",
                    {"user_id": txn.user_id},
                )
        if txn.staged_submission is not None:
            if submission is None or submission.version != txn.read_versions.get(SUBMISSIONS_CONTAINER):
                raise LedgerConflictError(
                    "Submission changed during transaction",
                    {"submission_id": txn.submission_id},
                )

        if txn.staged_user is not None and user is not None:
            new_version = user.version + 1
            self._users[txn.user_id] = user.model_copy(
                update={
                    "votes_remaining_per_address": dict(txn.staged_user.votes_remaining_per_address),
                    "version": new_version,
                }
            )
            txn.staged_user.version = new_version

        if txn.staged_submission is not None and submission is not None:
            new_version = submission.version + 1
            self._submissions[txn.submission_id] = submission.model_copy(
                update={
                    "votes": dict(txn.staged_submission.votes),
                    "total_votes": txn.staged_submission.total_votes,
                    "version": new_version,
                }
            )
            txn.staged_submission.version = new_version

    # ========================================================================
    # Users
    # ========================================================================

    async def get_user(self, user_id: str) -> Optional[UserDocument]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user is not None else None

    async def get_or_create_user(self, user: UserDocument) -> tuple[UserDocument, bool]:
        async with self._key_lock(ledger_key(USERS_CONTAINER, user.id)):
            existing = self._users.get(user.id)
            if existing is not None:
                return existing.model_copy(deep=True), False
            self._users[user.id] = user.model_copy(deep=True)
            logger.debug(f"Created user {user.id}")
            return user.model_copy(deep=True), True

    # ========================================================================
    # Submissions
    # ========================================================================

    async def get_submission(self, submission_id: str) -> Optional[SubmissionDocument]:
        submission = self._submissions.get(submission_id)
        return submission.model_copy(deep=True) if submission is not None else None

    async def create_submission(self, submission: SubmissionDocument) -> SubmissionDocument:
        async with self._key_lock(ledger_key(SUBMISSIONS_CONTAINER, submission.id)):
            if submission.id in self._submissions:
                raise LedgerConflictError(
                    "Submission already exists",
                    {"submission_id": submission.id},
                )
            self._submissions[submission.id] = submission.model_copy(deep=True)
        logger.debug(f"Created submission {submission.id}")
        return submission.model_copy(deep=True)

    async def update_submission_fields(
        self, submission_id: str, fields: dict[str, Any]
    ) -> Optional[SubmissionDocument]:
        async with self._key_lock(ledger_key(SUBMISSIONS_CONTAINER, submission_id)):
            current = self._submissions.get(submission_id)
            if current is None:
                return None
            merged = current.model_dump()
            merged.update(fields)
            merged["version"] = current.version + 1
            merged["updated_at"] = datetime.now(timezone.utc)
            # Tallies always come from the stored record
            merged["votes"] = dict(current.votes)
            merged["total_votes"] = current.total_votes
            updated = SubmissionDocument.model_validate(merged)
            self._submissions[submission_id] = updated
            return updated.model_copy(deep=True)

    async def delete_submission(self, submission_id: str) -> bool:
        async with self._key_lock(ledger_key(SUBMISSIONS_CONTAINER, submission_id)):
            removed = self._submissions.pop(submission_id, None)
        if removed is not None:
            logger.debug(f"Deleted submission {submission_id}")
        return removed is not None

    async def list_submissions(self) -> list[SubmissionDocument]:
        ordered = sorted(self._submissions.values(), key=lambda s: s.created_at)
        return [s.model_copy(deep=True) for s in ordered]
