"""
Exception hierarchy for the vote-accounting backend.

Every error raised by the ledger, the registry or the vote coordinator
inherits from ShowcaseError so the API layer can map them in one place.

A policy rejection ("no votes remaining", "nothing to retract") is NOT an
exception. It is returned as an ordinary VoteResult.
"""

from typing import Any, Optional


class ShowcaseError(Exception):
    """Base exception for all showcase errors.

    Carries a context dict for structured logging and reports whether the
    failure is transient via is_retryable.
    """

    _retryable: bool = False

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """True for transient failures the caller may retry."""
        return self._retryable

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


class InvalidArgumentError(ShowcaseError):
    """Malformed input: unknown category, bad delta, missing field."""


class NotFoundError(ShowcaseError):
    """Referenced user or submission does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found", {"entity": entity, "id": entity_id})


class PermissionDeniedError(ShowcaseError):
    """Caller is not allowed to modify the referenced record."""


class LedgerConflictError(ShowcaseError):
    """A ledger transaction lost a race and could not commit.

    Raised by the storage backends. The vote coordinator retries the whole
    read-decide-write cycle when it sees one.
    """

    _retryable = True


class VoteContentionError(LedgerConflictError):
    """Retries were exhausted while applying a vote."""


class StorageUnavailableError(ShowcaseError):
    """The ledger store could not be reached."""
