"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.v1.submissions import categories_router
from api.v1.submissions import router as submissions_router
from api.v1.users import router as users_router
from api.v1.votes import router as votes_router

router = APIRouter()

router.include_router(users_router, prefix="/users", tags=["Users"])
router.include_router(submissions_router, prefix="/submissions", tags=["Submissions"])
router.include_router(votes_router, prefix="/votes", tags=["Votes"])
router.include_router(categories_router, prefix="/categories", tags=["Categories"])
