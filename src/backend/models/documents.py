"""
Ledger document models for the holiday lights showcase.

These Pydantic models are the logical records held by the ledger store,
independent of which backend persists them.

Logical layout:
- users/{user_id}: UserDocument (profile + per-submission vote allowance)
- submissions/{submission_id}: SubmissionDocument (display + vote tallies)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Enums
# ============================================================================


class VotingCategory(str, Enum):
    """Award categories a submission accrues votes under."""

    OVERALL = "OVERALL"
    LIGHTS = "LIGHTS"
    CREATIVE = "CREATIVE"
    ANIMATED = "ANIMATED"
    DIY = "DIY"
    CLASSIC = "CLASSIC"

    @property
    def label(self) -> str:
        """Human-readable award title."""
        return CATEGORY_LABELS[self]

    @classmethod
    def parse(cls, value: "str | VotingCategory") -> "VotingCategory":
        """Resolve a tag (case-insensitive) or a member; raises ValueError."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().upper())


CATEGORY_LABELS: dict[VotingCategory, str] = {
    VotingCategory.OVERALL: "Best Overall Display",
    VotingCategory.LIGHTS: "Best Use of Lights",
    VotingCategory.CREATIVE: "Most Creative",
    VotingCategory.ANIMATED: "Best Animated Display",
    VotingCategory.DIY: "Best DIY Decorations",
    VotingCategory.CLASSIC: "Best Classic Christmas",
}


def empty_tally() -> dict[str, int]:
    """A votes map with every category present at zero."""
    return {category.value: 0 for category in VotingCategory}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Base Document Model
# ============================================================================


class LedgerDocument(BaseModel):
    """
    Base class for ledger documents.

    All documents have:
    - id: Unique identifier (the key inside its container)
    - version: Row version, bumped by the store on every committed write
    """

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    version: int = 0


# ============================================================================
# User Documents
# ============================================================================


class UserDocument(LedgerDocument):
    """
    User document stored under users/{id}.

    The id is the identity provider's subject and never changes.
    votes_remaining_per_address is lazily populated: a missing key means the
    user still has the full allowance for that submission.
    """

    name: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

    # submission_id -> votes the user may still cast on it
    votes_remaining_per_address: dict[str, int] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=_utcnow)

    def remaining_for(self, submission_id: str, max_votes: int) -> int:
        """Remaining allowance for a submission, defaulting to the maximum."""
        return self.votes_remaining_per_address.get(submission_id, max_votes)


# ============================================================================
# Submission Documents
# ============================================================================


class PhotoDocument(BaseModel):
    """Embedded photo reference; the URL is resolved by the upload pipeline."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    url: str
    is_featured: bool = False


class SubmissionDocument(LedgerDocument):
    """
    Submission document stored under submissions/{id}.

    votes always holds every category; total_votes is the sum of votes.
    Both are written only by the vote coordinator.
    """

    user_id: str

    # Display payload (opaque to vote accounting)
    address: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    lat: float = 0.0
    lng: float = 0.0
    photos: list[PhotoDocument] = Field(default_factory=list)
    description: Optional[str] = None

    # Tallies
    votes: dict[str, int] = Field(default_factory=empty_tally)
    total_votes: int = 0

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def featured_photo(self) -> Optional[PhotoDocument]:
        """The featured photo, falling back to the first one."""
        for photo in self.photos:
            if photo.is_featured:
                return photo
        return self.photos[0] if self.photos else None

    def votes_for(self, category: VotingCategory) -> int:
        """Current count for a category (missing counts as zero)."""
        return self.votes.get(VotingCategory.parse(category).value, 0)


# Fields the submission registry may edit; tallies and ownership are excluded.
SUBMISSION_EDITABLE_FIELDS: frozenset[str] = frozenset(
    {"address", "first_name", "last_name", "lat", "lng", "photos", "description"}
)
