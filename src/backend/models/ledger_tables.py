"""
SQL tables backing the ledger store.

Each row carries a version column used for optimistic compare-and-swap:
a write only succeeds when the row still has the version it was read at.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class UserRow(Base):
    """
    users/{id}

    votes_remaining holds submission_id -> remaining allowance.
    Submissions the user never voted on are absent (full allowance).
    """

    __tablename__ = "users"

    # Opaque identity-provider subject, not necessarily a UUID
    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    name: Mapped[str] = mapped_column(String(255), default="")
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    votes_remaining: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Version for optimistic locking
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<UserRow(id={self.id}, version={self.version})>"


class SubmissionRow(Base):
    """
    submissions/{id}

    votes holds every category tag -> count; total_votes is their sum.
    """

    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    address: Mapped[str] = mapped_column(String(500), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    lat: Mapped[float] = mapped_column(Float, default=0.0)
    lng: Mapped[float] = mapped_column(Float, default=0.0)
    photos: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    votes: Mapped[dict[str, int]] = mapped_column(JSON, default=dict, nullable=False)
    total_votes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Version for optimistic locking
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (Index("ix_submissions_total_votes", "total_votes"),)

    def __repr__(self) -> str:
        return f"<SubmissionRow(id={self.id}, total_votes={self.total_votes}, version={self.version})>"
