"""
Submission registry.

Create, edit, delete and list holiday-light display submissions. Vote
tallies are never written here: new submissions start with every category
at zero, and edits only merge descriptive fields so they cannot overwrite
counts written concurrently by the vote coordinator.
"""

from typing import Any, Iterable, Optional
from uuid import uuid4

import structlog

from core.config import settings
from core.exceptions import InvalidArgumentError, NotFoundError, PermissionDeniedError
from db.ledger import LedgerStore
from models.documents import (
    SUBMISSION_EDITABLE_FIELDS,
    PhotoDocument,
    SubmissionDocument,
    VotingCategory,
    empty_tally,
)

logger = structlog.get_logger(__name__)


def _normalize_photos(photos: Iterable[Any], max_photos: int) -> list[PhotoDocument]:
    """Validate photo references and make sure one of them is featured."""
    normalized: list[PhotoDocument] = []
    for photo in photos:
        if isinstance(photo, PhotoDocument):
            normalized.append(photo.model_copy())
        elif isinstance(photo, dict):
            if not photo.get("url"):
                raise InvalidArgumentError("Photo url is required")
            normalized.append(PhotoDocument(**photo))
        elif isinstance(photo, str) and photo:
            normalized.append(PhotoDocument(url=photo))
        else:
            raise InvalidArgumentError("Invalid photo reference", {"photo": repr(photo)})

    if len(normalized) > max_photos:
        raise InvalidArgumentError(
            f"A submission can have at most {max_photos} photos",
            {"photos": len(normalized)},
        )

    if normalized and not any(p.is_featured for p in normalized):
        normalized[0].is_featured = True
    return normalized


def _validate_location(lat: Optional[float], lng: Optional[float]) -> None:
    if lat is not None and not -90.0 <= lat <= 90.0:
        raise InvalidArgumentError("Latitude out of range", {"lat": lat})
    if lng is not None and not -180.0 <= lng <= 180.0:
        raise InvalidArgumentError("Longitude out of range", {"lng": lng})


class SubmissionRegistry:
    """CRUD surface for submissions."""

    def __init__(self, ledger: LedgerStore, max_photos: Optional[int] = None):
        self.ledger = ledger
        self.max_photos = max_photos if max_photos is not None else settings.MAX_PHOTOS

    async def create_submission(
        self,
        owner_id: str,
        address: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        lat: float = 0.0,
        lng: float = 0.0,
        photos: Optional[Iterable[Any]] = None,
        description: Optional[str] = None,
    ) -> SubmissionDocument:
        """Register a display. Tallies start at zero for every category."""
        if not address or not address.strip():
            raise InvalidArgumentError("Address is required")
        if await self.ledger.get_user(owner_id) is None:
            raise NotFoundError("User", owner_id)
        _validate_location(lat, lng)

        submission = SubmissionDocument(
            id=str(uuid4()),
            user_id=owner_id,
            address=address.strip(),
            first_name=first_name,
            last_name=last_name,
            lat=lat,
            lng=lng,
            photos=_normalize_photos(photos or [], self.max_photos),
            description=description,
            votes=empty_tally(),
            total_votes=0,
        )
        created = await self.ledger.create_submission(submission)
        logger.info("submission_created", submission_id=created.id, user_id=owner_id)
        return created

    async def get_submission(self, submission_id: str) -> SubmissionDocument:
        submission = await self.ledger.get_submission(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)
        return submission

    async def _get_owned(self, submission_id: str, requester_id: str) -> SubmissionDocument:
        submission = await self.get_submission(submission_id)
        if submission.user_id != requester_id:
            logger.warning(
                "submission_ownership_denied",
                submission_id=submission_id,
                requester_id=requester_id,
            )
            raise PermissionDeniedError(
                "Only the owner can modify this submission",
                {"submission_id": submission_id},
            )
        return submission

    async def update_submission(
        self,
        submission_id: str,
        requester_id: str,
        fields: dict[str, Any],
    ) -> SubmissionDocument:
        """
        Merge descriptive fields into a submission owned by the requester.

        Raises:
            InvalidArgumentError: a field is not editable or fails validation
            NotFoundError: the submission does not exist
            PermissionDeniedError: the requester does not own it
        """
        illegal = set(fields) - SUBMISSION_EDITABLE_FIELDS
        if illegal:
            raise InvalidArgumentError(
                "Fields cannot be edited",
                {"fields": ",".join(sorted(illegal))},
            )

        changes = dict(fields)
        if "address" in changes:
            address = changes["address"]
            if not address or not str(address).strip():
                raise InvalidArgumentError("Address is required")
            changes["address"] = str(address).strip()
        for field in ("lat", "lng"):
            if field in changes and changes[field] is None:
                raise InvalidArgumentError(f"{field} cannot be null", {"field": field})
        _validate_location(changes.get("lat"), changes.get("lng"))
        if "photos" in changes:
            changes["photos"] = _normalize_photos(changes["photos"] or [], self.max_photos)

        await self._get_owned(submission_id, requester_id)
        if not changes:
            return await self.get_submission(submission_id)

        updated = await self.ledger.update_submission_fields(submission_id, changes)
        if updated is None:
            # Deleted between the ownership check and the write
            raise NotFoundError("Submission", submission_id)
        logger.info(
            "submission_updated",
            submission_id=submission_id,
            fields=sorted(changes),
        )
        return updated

    async def delete_submission(self, submission_id: str, requester_id: str) -> None:
        """Delete a submission owned by the requester.

        Allowance entries users hold for it are left behind; they are inert.
        """
        await self._get_owned(submission_id, requester_id)
        if not await self.ledger.delete_submission(submission_id):
            raise NotFoundError("Submission", submission_id)
        logger.info("submission_deleted", submission_id=submission_id, user_id=requester_id)

    async def list_submissions(self, owner_id: Optional[str] = None) -> list[SubmissionDocument]:
        """All submissions, optionally only those of one owner."""
        submissions = await self.ledger.list_submissions()
        if owner_id is not None:
            submissions = [s for s in submissions if s.user_id == owner_id]
        return submissions

    async def leaderboard(
        self,
        category: Optional[VotingCategory] = None,
        limit: int = 10,
    ) -> list[SubmissionDocument]:
        """
        Rank submissions by votes in a category, or by total votes.

        Ties keep a stable order by submission id.
        """
        if limit < 1:
            raise InvalidArgumentError("limit must be positive", {"limit": limit})
        submissions = await self.ledger.list_submissions()
        if category is None:
            ranked = sorted(submissions, key=lambda s: (-s.total_votes, s.id))
        else:
            ranked = sorted(submissions, key=lambda s: (-s.votes_for(category), s.id))
        return ranked[:limit]
