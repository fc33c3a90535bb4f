"""
SQL ledger store using SQLAlchemy async.

A vote transaction reads both rows inside one database transaction and
writes them back with compare-and-swap on the row version:

    UPDATE ... SET ..., version = :read_version + 1
    WHERE id = :id AND version = :read_version

If either statement matches no row, another writer got there first; the
whole database transaction is rolled back and LedgerConflictError raised.
Users are always written before submissions so concurrent transactions
take row locks in the same order.

In-memory SQLite runs on a single shared connection (StaticPool). Every
session on it would share one SQLite transaction, so sessions are
serialized with an asyncio.Lock there.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from pydantic import BaseModel
from sqlalchemy import delete, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.exceptions import LedgerConflictError, StorageUnavailableError
from db.base import Base
from db.ledger import LedgerStore, LedgerTransaction
from models.documents import PhotoDocument, SubmissionDocument, UserDocument
from models.ledger_tables import SubmissionRow, UserRow

logger = logging.getLogger(__name__)

# Driver messages that mean "lost a race", not "database is down"
_CONTENTION_MARKERS = (
    "database is locked",
    "deadlock detected",
    "could not serialize access",
    "serialization failure",
)


def _user_row_to_document(row: UserRow) -> UserDocument:
    return UserDocument(
        id=row.id,
        version=row.version,
        name=row.name or "",
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        address=row.address,
        votes_remaining_per_address=dict(row.votes_remaining or {}),
        created_at=row.created_at,
    )


def _submission_row_to_document(row: SubmissionRow) -> SubmissionDocument:
    return SubmissionDocument(
        id=row.id,
        version=row.version,
        user_id=row.user_id,
        address=row.address,
        first_name=row.first_name,
        last_name=row.last_name,
        lat=row.lat,
        lng=row.lng,
        photos=[PhotoDocument(**p) for p in (row.photos or [])],
        description=row.description,
        votes=dict(row.votes or {}),
        total_votes=row.total_votes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _column_value(value: Any) -> Any:
    """Convert pydantic values to JSON-column friendly data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_column_value(v) for v in value]
    return value


def _translate_db_error(exc: Exception) -> Exception:
    """Map driver errors onto the ledger error taxonomy."""
    message = str(exc).lower()
    invalidated = isinstance(exc, DBAPIError) and exc.connection_invalidated
    if not invalidated and any(m in message for m in _CONTENTION_MARKERS):
        return LedgerConflictError("Ledger transaction contention", {"error": type(exc).__name__})
    return StorageUnavailableError("Ledger storage unavailable", {"error": type(exc).__name__})


class _SqlTransaction(LedgerTransaction):
    def __init__(self, session: AsyncSession, user_id: str, submission_id: str):
        super().__init__(user_id, submission_id)
        self.session = session
        self.user_read_version: Optional[int] = None
        self.submission_read_version: Optional[int] = None

    async def read_user(self) -> Optional[UserDocument]:
        result = await self.session.execute(select(UserRow).where(UserRow.id == self.user_id))
        row = result.scalar_one_or_none()
        if row is None:
            return None
        self.user_read_version = row.version
        return _user_row_to_document(row)

    async def read_submission(self) -> Optional[SubmissionDocument]:
        result = await self.session.execute(
            select(SubmissionRow).where(SubmissionRow.id == self.submission_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        self.submission_read_version = row.version
        return _submission_row_to_document(row)

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def flush(self) -> None:
        """Write staged rows with version compare-and-swap."""
        if self.staged_user is not None:
            if self.user_read_version is None:
                raise LedgerConflictError("User was not read in this transaction", {"user_id": self.user_id})
            result = await self.session.execute(
                update(UserRow)
                .where(UserRow.id == self.user_id, UserRow.version == self.user_read_version)
                .values(
                    votes_remaining=dict(self.staged_user.votes_remaining_per_address),
                    version=self.user_read_version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if self._get_rowcount(result) != 1:
                raise LedgerConflictError("User changed during transaction", {"user_id": self.user_id})
            self.staged_user.version = self.user_read_version + 1

        if self.staged_submission is not None:
            if self.submission_read_version is None:
                raise LedgerConflictError(
                    "Submission was not read in this transaction",
                    {"submission_id": self.submission_id},
                )
            result = await self.session.execute(
                update(SubmissionRow)
                .where(
                    SubmissionRow.id == self.submission_id,
                    SubmissionRow.version == self.submission_read_version,
                )
                .values(
                    votes=dict(self.staged_submission.votes),
                    total_votes=self.staged_submission.total_votes,
                    version=self.submission_read_version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if self._get_rowcount(result) != 1:
                raise LedgerConflictError(
                    "Submission changed during transaction",
                    {"submission_id": self.submission_id},
                )
            self.staged_submission.version = self.submission_read_version + 1


class SqlLedgerStore(LedgerStore):
    """Durable ledger backed by any SQLAlchemy async database."""

    name = "sql"

    def __init__(self, database_url: str, echo: bool = False, engine: Optional[AsyncEngine] = None):
        self.database_url = database_url
        if engine is None:
            engine_kwargs: dict[str, Any] = {"echo": echo}
            in_memory_sqlite = database_url.startswith("sqlite") and (
                ":memory:" in database_url or database_url.endswith("://")
            )
            if in_memory_sqlite:
                # One shared connection, otherwise every session sees its own empty database
                engine_kwargs["poolclass"] = StaticPool
                engine_kwargs["connect_args"] = {"check_same_thread": False}
            else:
                engine_kwargs["pool_pre_ping"] = True
            engine = create_async_engine(database_url, **engine_kwargs)
        self.engine = engine
        self._sessionmaker = async_sessionmaker(engine, expire_on_commit=False)
        self._connection_lock: Optional[asyncio.Lock] = (
            asyncio.Lock() if isinstance(engine.pool, StaticPool) else None
        )

    async def init(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (OSError, InterfaceError, DBAPIError) as e:
            raise _translate_db_error(e) from e
        logger.info(f"Ledger tables ready on {self.engine.url.render_as_string(hide_password=True)}")

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Disposed ledger engine")

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session with one transaction, exclusive when the pool has a single connection."""
        if self._connection_lock is None:
            async with self._open_session() as session:
                yield session
            return
        async with self._connection_lock:
            async with self._open_session() as session:
                yield session

    @asynccontextmanager
    async def _open_session(self) -> AsyncIterator[AsyncSession]:
        """Driver errors become ledger errors."""
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    yield session
        except (OSError, InterfaceError, OperationalError) as e:
            raise _translate_db_error(e) from e
        except DBAPIError as e:
            if isinstance(e, IntegrityError):
                raise
            raise _translate_db_error(e) from e

    @asynccontextmanager
    async def transaction(self, user_id: str, submission_id: str) -> AsyncIterator[LedgerTransaction]:
        async with self._session() as session:
            txn = _SqlTransaction(session, user_id, submission_id)
            yield txn
            await txn.flush()

    # ========================================================================
    # Users
    # ========================================================================

    async def get_user(self, user_id: str) -> Optional[UserDocument]:
        async with self._session() as session:
            result = await session.execute(select(UserRow).where(UserRow.id == user_id))
            row = result.scalar_one_or_none()
            return _user_row_to_document(row) if row is not None else None

    async def get_or_create_user(self, user: UserDocument) -> tuple[UserDocument, bool]:
        try:
            async with self._session() as session:
                session.add(
                    UserRow(
                        id=user.id,
                        name=user.name,
                        first_name=user.first_name,
                        last_name=user.last_name,
                        email=user.email,
                        address=user.address,
                        votes_remaining=dict(user.votes_remaining_per_address),
                        created_at=user.created_at,
                        version=user.version,
                    )
                )
            logger.debug(f"Created user {user.id}")
            return user.model_copy(deep=True), True
        except IntegrityError:
            # Concurrent first login inserted the row first
            existing = await self.get_user(user.id)
            if existing is None:
                raise
            return existing, False

    # ========================================================================
    # Submissions
    # ========================================================================

    async def get_submission(self, submission_id: str) -> Optional[SubmissionDocument]:
        async with self._session() as session:
            result = await session.execute(select(SubmissionRow).where(SubmissionRow.id == submission_id))
            row = result.scalar_one_or_none()
            return _submission_row_to_document(row) if row is not None else None

    async def create_submission(self, submission: SubmissionDocument) -> SubmissionDocument:
        try:
            async with self._session() as session:
                session.add(
                    SubmissionRow(
                        id=submission.id,
                        user_id=submission.user_id,
                        address=submission.address,
                        first_name=submission.first_name,
                        last_name=submission.last_name,
                        lat=submission.lat,
                        lng=submission.lng,
                        photos=_column_value(submission.photos),
                        description=submission.description,
                        votes=dict(submission.votes),
                        total_votes=submission.total_votes,
                        created_at=submission.created_at,
                        updated_at=submission.updated_at,
                        version=submission.version,
                    )
                )
        except IntegrityError as e:
            raise LedgerConflictError(
                "Submission already exists",
                {"submission_id": submission.id},
            ) from e
        logger.debug(f"Created submission {submission.id}")
        return submission.model_copy(deep=True)

    async def update_submission_fields(
        self, submission_id: str, fields: dict[str, Any]
    ) -> Optional[SubmissionDocument]:
        values = {key: _column_value(value) for key, value in fields.items()}
        # Tallies and ownership are never written here
        for protected in ("id", "user_id", "votes", "total_votes", "version", "created_at"):
            values.pop(protected, None)
        values["updated_at"] = datetime.now(timezone.utc)

        async with self._session() as session:
            result = await session.execute(
                update(SubmissionRow)
                .where(SubmissionRow.id == submission_id)
                .values(version=SubmissionRow.version + 1, **values)
                .execution_options(synchronize_session=False)
            )
            if (getattr(result, "rowcount", 0) or 0) == 0:
                return None
            refreshed = await session.execute(select(SubmissionRow).where(SubmissionRow.id == submission_id))
            return _submission_row_to_document(refreshed.scalar_one())

    async def delete_submission(self, submission_id: str) -> bool:
        async with self._session() as session:
            result = await session.execute(
                delete(SubmissionRow)
                .where(SubmissionRow.id == submission_id)
                .execution_options(synchronize_session=False)
            )
            deleted = (getattr(result, "rowcount", 0) or 0) > 0
        if deleted:
            logger.debug(f"Deleted submission {submission_id}")
        return deleted

    async def list_submissions(self) -> list[SubmissionDocument]:
        async with self._session() as session:
            result = await session.execute(select(SubmissionRow).order_by(SubmissionRow.created_at))
            return [_submission_row_to_document(row) for row in result.scalars().all()]
