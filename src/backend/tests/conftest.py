"""
Pytest fixtures for the holiday lights backend tests.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any, Callable

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("LEDGER_BACKEND", "memory")

from db.memory_ledger import InMemoryLedgerStore  # noqa: E402
from models.documents import SubmissionDocument, UserDocument, empty_tally  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def ledger() -> InMemoryLedgerStore:
    """Fresh in-memory ledger per test."""
    return InMemoryLedgerStore()


@pytest.fixture
def make_user(ledger: InMemoryLedgerStore) -> Callable[..., Any]:
    """Insert a user into the ledger."""

    async def _make_user(user_id: str = "user-1", **kwargs: Any) -> UserDocument:
        user = UserDocument(id=user_id, name=kwargs.pop("name", user_id), **kwargs)
        stored, _ = await ledger.get_or_create_user(user)
        return stored

    return _make_user


@pytest.fixture
def make_submission(ledger: InMemoryLedgerStore) -> Callable[..., Any]:
    """Insert a submission into the ledger, optionally with existing tallies."""

    async def _make_submission(
        submission_id: str = "S1",
        owner_id: str = "owner-1",
        votes: dict[str, int] | None = None,
        **kwargs: Any,
    ) -> SubmissionDocument:
        tally = empty_tally()
        tally.update(votes or {})
        submission = SubmissionDocument(
            id=submission_id,
            user_id=owner_id,
            address=kwargs.pop("address", "123 Tinsel Lane"),
            votes=tally,
            total_votes=sum(tally.values()),
            **kwargs,
        )
        return await ledger.create_submission(submission)

    return _make_submission


@pytest.fixture
async def app(ledger: InMemoryLedgerStore) -> AsyncGenerator[Any, None]:
    """Create FastAPI application for testing, wired to the test ledger."""
    from db.session import set_ledger_store
    from main import app as fastapi_app

    set_ledger_store(ledger)
    yield fastapi_app
    set_ledger_store(None)


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Build bearer headers for an identity."""
    from core.security import create_access_token

    def _auth_headers(user_id: str = "user-1") -> dict[str, str]:
        token = create_access_token({"sub": user_id})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
