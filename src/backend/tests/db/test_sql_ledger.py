"""
Tests for the SQL ledger store on in-memory SQLite (aiosqlite).

Covers:
- Record CRUD and JSON round trips
- Transaction commit and rollback
- Version compare-and-swap conflicts
- Concurrent votes on the single shared in-memory connection
- Driver error translation
"""

import asyncio
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from core.exceptions import LedgerConflictError, StorageUnavailableError
from db.sql_ledger import SqlLedgerStore, _translate_db_error
from models.documents import PhotoDocument, SubmissionDocument, UserDocument, empty_tally
from models.ledger_tables import UserRow
from services.vote_coordinator import VoteCoordinator


@pytest.fixture
async def sql_ledger() -> AsyncGenerator[SqlLedgerStore, None]:
    store = SqlLedgerStore("sqlite+aiosqlite://")
    await store.init()
    yield store
    await store.close()


async def _seed(store: SqlLedgerStore) -> None:
    await store.get_or_create_user(UserDocument(id="user-1", name="Noel", email="noel@example.com"))
    tally = empty_tally()
    tally["LIGHTS"] = 3
    tally["OVERALL"] = 4
    await store.create_submission(
        SubmissionDocument(
            id="S1",
            user_id="owner-1",
            address="5 Reindeer Way",
            photos=[PhotoDocument(url="https://img/1.jpg", is_featured=True)],
            votes=tally,
            total_votes=7,
        )
    )


@pytest.mark.unit
class TestSqlRecords:
    """Tests for record operations."""

    async def test_user_round_trip(self, sql_ledger) -> None:
        """Test users are created once and read back."""
        await _seed(sql_ledger)

        user = await sql_ledger.get_user("user-1")
        again, created = await sql_ledger.get_or_create_user(UserDocument(id="user-1", name="Other"))

        assert user.name == "Noel"
        assert user.votes_remaining_per_address == {}
        assert created is False
        assert again.name == "Noel"

    async def test_submission_round_trip(self, sql_ledger) -> None:
        """Test tallies and photos survive the JSON columns."""
        await _seed(sql_ledger)

        submission = await sql_ledger.get_submission("S1")

        assert submission.votes["LIGHTS"] == 3
        assert submission.total_votes == 7
        assert submission.photos[0].url == "https://img/1.jpg"
        assert submission.featured_photo.is_featured is True

    async def test_missing_records(self, sql_ledger) -> None:
        assert await sql_ledger.get_user("nobody") is None
        assert await sql_ledger.get_submission("nothing") is None

    async def test_duplicate_submission_conflicts(self, sql_ledger) -> None:
        await _seed(sql_ledger)

        with pytest.raises(LedgerConflictError):
            await sql_ledger.create_submission(SubmissionDocument(id="S1", user_id="x", address="y"))

    async def test_update_fields_keeps_tallies(self, sql_ledger) -> None:
        """Test descriptive edits cannot rewrite votes."""
        await _seed(sql_ledger)

        updated = await sql_ledger.update_submission_fields(
            "S1",
            {"description": "Now with music", "votes": {}, "total_votes": 0},
        )

        assert updated.description == "Now with music"
        assert updated.votes["LIGHTS"] == 3
        assert updated.total_votes == 7
        assert updated.version == 1

    async def test_update_missing_returns_none(self, sql_ledger) -> None:
        assert await sql_ledger.update_submission_fields("nope", {"description": "x"}) is None

    async def test_delete_and_list(self, sql_ledger) -> None:
        await _seed(sql_ledger)

        assert [s.id for s in await sql_ledger.list_submissions()] == ["S1"]
        assert await sql_ledger.delete_submission("S1") is True
        assert await sql_ledger.delete_submission("S1") is False
        assert await sql_ledger.list_submissions() == []


@pytest.mark.unit
class TestSqlTransaction:
    """Tests for the vote transaction."""

    async def test_commit(self, sql_ledger) -> None:
        """Test both rows are written with bumped versions."""
        await _seed(sql_ledger)

        async with sql_ledger.transaction("user-1", "S1") as txn:
            user = await txn.read_user()
            submission = await txn.read_submission()
            user.votes_remaining_per_address["S1"] = 9
            submission.votes["LIGHTS"] = 4
            submission.total_votes = 8
            txn.write_user(user)
            txn.write_submission(submission)

        stored_user = await sql_ledger.get_user("user-1")
        stored_submission = await sql_ledger.get_submission("S1")
        assert stored_user.votes_remaining_per_address == {"S1": 9}
        assert stored_user.version == 1
        assert stored_submission.votes["LIGHTS"] == 4
        assert stored_submission.total_votes == 8
        assert stored_submission.version == 1

    async def test_rollback_on_error(self, sql_ledger) -> None:
        """Test an exception inside the block leaves both rows untouched."""
        await _seed(sql_ledger)

        with pytest.raises(RuntimeError):
            async with sql_ledger.transaction("user-1", "S1") as txn:
                user = await txn.read_user()
                user.votes_remaining_per_address["S1"] = 0
                txn.write_user(user)
                raise RuntimeError("boom")

        stored = await sql_ledger.get_user("user-1")
        assert stored.votes_remaining_per_address == {}

    async def test_version_conflict_rolls_back(self, sql_ledger) -> None:
        """Test a row changed after the read makes the commit fail as a whole."""
        await _seed(sql_ledger)

        with pytest.raises(LedgerConflictError):
            async with sql_ledger.transaction("user-1", "S1") as txn:
                user = await txn.read_user()
                submission = await txn.read_submission()
                # Another writer bumps the user between read and write
                await txn.session.execute(
                    update(UserRow).where(UserRow.id == "user-1").values(version=UserRow.version + 5)
                )
                user.votes_remaining_per_address["S1"] = 9
                submission.votes["LIGHTS"] = 4
                submission.total_votes = 8
                txn.write_user(user)
                txn.write_submission(submission)

        stored_user = await sql_ledger.get_user("user-1")
        stored_submission = await sql_ledger.get_submission("S1")
        assert stored_user.votes_remaining_per_address == {}
        assert stored_user.version == 0
        assert stored_submission.votes["LIGHTS"] == 3
        assert stored_submission.total_votes == 7

    async def test_coordinator_on_sql(self, sql_ledger) -> None:
        """Test a full cast/retract cycle through the coordinator."""
        await _seed(sql_ledger)
        coordinator = VoteCoordinator(sql_ledger, max_votes=10, max_retries=2, retry_backoff_seconds=0)

        cast = await coordinator.cast_vote("user-1", "S1", "LIGHTS")
        retract = await coordinator.retract_vote("user-1", "S1", "LIGHTS")
        rejected = await coordinator.retract_vote("user-1", "S1", "LIGHTS")

        assert cast.applied is True
        assert cast.user.votes_remaining_per_address["S1"] == 9
        assert cast.submission.total_votes == 8
        assert retract.applied is True
        assert retract.submission.votes["LIGHTS"] == 3
        assert rejected.rejected is True

    @pytest.mark.parametrize("allowance,attempts", [(3, 10), (0, 4)])
    async def test_concurrent_casts_respect_allowance(self, sql_ledger, allowance, attempts) -> None:
        """Test N concurrent casts with allowance k give exactly k successes on one connection."""
        await _seed(sql_ledger)
        await sql_ledger.get_or_create_user(
            UserDocument(id="user-2", votes_remaining_per_address={"S1": allowance})
        )
        coordinator = VoteCoordinator(sql_ledger, max_votes=10, max_retries=5, retry_backoff_seconds=0)

        results = await asyncio.gather(
            *(coordinator.cast_vote("user-2", "S1", "LIGHTS") for _ in range(attempts))
        )

        assert sum(1 for r in results if r.applied) == allowance
        assert sum(1 for r in results if r.rejected) == attempts - allowance
        user = await sql_ledger.get_user("user-2")
        submission = await sql_ledger.get_submission("S1")
        assert user.votes_remaining_per_address["S1"] == 0
        assert submission.votes["LIGHTS"] == 3 + allowance
        assert submission.total_votes == 7 + allowance

    async def test_concurrent_casts_from_many_users(self, sql_ledger) -> None:
        """Test every reported success is reflected in the stored tally."""
        await _seed(sql_ledger)
        for i in range(5):
            await sql_ledger.get_or_create_user(UserDocument(id=f"voter-{i}"))
        coordinator = VoteCoordinator(sql_ledger, max_votes=10, max_retries=5, retry_backoff_seconds=0)

        results = await asyncio.gather(
            *(coordinator.cast_vote(f"voter-{i}", "S1", "DIY") for i in range(5) for _ in range(2))
        )

        applied = sum(1 for r in results if r.applied)
        submission = await sql_ledger.get_submission("S1")
        assert applied == 10
        assert submission.votes["DIY"] == applied
        assert submission.total_votes == 7 + applied


@pytest.mark.unit
class TestErrorTranslation:
    def test_locked_database_is_conflict(self) -> None:
        error = OperationalError("UPDATE users", {}, Exception("database is locked"))

        assert isinstance(_translate_db_error(error), LedgerConflictError)

    def test_other_errors_are_unavailable(self) -> None:
        error = OperationalError("SELECT 1", {}, Exception("unable to open database file"))

        assert isinstance(_translate_db_error(error), StorageUnavailableError)

    def test_os_error_is_unavailable(self) -> None:
        assert isinstance(_translate_db_error(ConnectionRefusedError("refused")), StorageUnavailableError)
