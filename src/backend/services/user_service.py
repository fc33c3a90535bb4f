"""
User directory.

Users are keyed by the identity provider's subject and created on their
first login with an empty vote allowance map.
"""

from typing import Optional

import structlog

from core.exceptions import InvalidArgumentError, NotFoundError
from db.ledger import LedgerStore
from models.documents import UserDocument

logger = structlog.get_logger(__name__)


def default_display_name(email: Optional[str]) -> str:
    """Local part of an email address, or an empty string."""
    if not email:
        return ""
    return email.split("@", 1)[0]


class UserService:
    """Login-time user provisioning and lookups."""

    def __init__(self, ledger: LedgerStore):
        self.ledger = ledger

    async def login(
        self,
        user_id: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        address: Optional[str] = None,
    ) -> tuple[UserDocument, bool]:
        """
        Return the user for an authenticated identity, creating it on first login.

        Profile fields are only used when the record is created; an existing
        user is returned unchanged.
        """
        if not user_id:
            raise InvalidArgumentError("user_id is required")

        candidate = UserDocument(
            id=user_id,
            name=name or default_display_name(email),
            first_name=first_name,
            last_name=last_name,
            email=email.lower() if email else None,
            address=address,
            votes_remaining_per_address={},
        )
        user, created = await self.ledger.get_or_create_user(candidate)
        if created:
            logger.info("user_created", user_id=user_id)
        return user, created

    async def get_user(self, user_id: str) -> UserDocument:
        user = await self.ledger.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user
