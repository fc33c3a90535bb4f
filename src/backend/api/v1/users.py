"""
User endpoints.

Users are created on first login, keyed by the identity token subject.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends

from api.deps import get_current_identity, get_current_user, get_user_service
from models.documents import UserDocument
from schemas.converters import user_document_to_schema
from schemas.user import LoginRequest, LoginResponse, UserResponse
from services.user_service import UserService

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    user_id: Annotated[str, Depends(get_current_identity)],
    profile: Optional[LoginRequest] = Body(None),
    user_service: UserService = Depends(get_user_service),
) -> LoginResponse:
    """Return the caller's user record, creating it on first login."""
    profile = profile or LoginRequest()
    user, created = await user_service.login(
        user_id,
        email=profile.email,
        name=profile.name,
        first_name=profile.first_name,
        last_name=profile.last_name,
        address=profile.address,
    )
    return LoginResponse(user=user_document_to_schema(user), created=created)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[UserDocument, Depends(get_current_user)],
) -> UserResponse:
    """Current user snapshot with remaining votes per submission."""
    return user_document_to_schema(current_user)
