"""
Shared dependencies for API endpoints.

Includes:
- Bearer-token identity (the token subject is the user id)
- Service construction over the shared ledger store
"""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.security import decode_token
from db.ledger import LedgerStore
from db.session import get_db
from models.documents import UserDocument
from services.description_service import DescriptionService
from services.submission_registry import SubmissionRegistry
from services.user_service import UserService
from services.vote_coordinator import VoteCoordinator

logger = structlog.get_logger(__name__)

# Security schemes
security = HTTPBearer()


# =============================================================================
# Services
# =============================================================================


def get_vote_coordinator(ledger: LedgerStore = Depends(get_db)) -> VoteCoordinator:
    return VoteCoordinator(ledger)


def get_submission_registry(ledger: LedgerStore = Depends(get_db)) -> SubmissionRegistry:
    return SubmissionRegistry(ledger)


def get_user_service(ledger: LedgerStore = Depends(get_db)) -> UserService:
    return UserService(ledger)


def get_description_service() -> DescriptionService:
    return DescriptionService()


# =============================================================================
# Identity (JWT-based)
# =============================================================================


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> str:
    """
    Extract the authenticated user id from the bearer token.

    The user record may not exist yet (first login).

    Raises:
        HTTPException: If the token is invalid or has no subject.
    """
    payload = decode_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return str(user_id)


async def get_current_user(
    user_id: Annotated[str, Depends(get_current_identity)],
    ledger: LedgerStore = Depends(get_db),
) -> UserDocument:
    """
    Resolve the authenticated identity to its user record.

    Raises:
        HTTPException: If the user has never logged in.
    """
    user = await ledger.get_user(user_id)

    if user is None:
        logger.info("unknown_identity", user_id=user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found, log in first",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user
