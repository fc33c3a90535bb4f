"""
Ledger store lifecycle.

The configured backend is created lazily and reused across requests.
LEDGER_BACKEND selects it:
1. "memory" - InMemoryLedgerStore (tests, local development)
2. "sql" - SqlLedgerStore on DATABASE_URL (deployments)
"""

import logging
from typing import AsyncGenerator

from core.config import settings
from db.ledger import LedgerStore

logger = logging.getLogger(__name__)

# Global store instance (lazy-initialized)
_ledger_store: LedgerStore | None = None


def create_ledger_store() -> LedgerStore:
    """Build a ledger store for the configured backend."""
    if settings.LEDGER_BACKEND == "sql":
        from db.sql_ledger import SqlLedgerStore

        return SqlLedgerStore(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

    from db.memory_ledger import InMemoryLedgerStore

    return InMemoryLedgerStore()


def get_ledger_store() -> LedgerStore:
    """
    Get or create the ledger store.

    The store is a singleton shared by every request.
    """
    global _ledger_store

    if _ledger_store is None:
        _ledger_store = create_ledger_store()
        logger.info(f"Initialized {_ledger_store.name} ledger store")

    return _ledger_store


def set_ledger_store(store: LedgerStore | None) -> None:
    """Replace the shared store (used by tests and embedding applications)."""
    global _ledger_store
    _ledger_store = store


async def init_db() -> None:
    """Create the store and prepare its backend."""
    store = get_ledger_store()
    await store.init()


async def close_db() -> None:
    """
    Close ledger connections.

    Should be called during application shutdown.
    """
    global _ledger_store

    if _ledger_store is not None:
        await _ledger_store.close()
        _ledger_store = None
        logger.info("Closed ledger store")


async def get_db() -> AsyncGenerator[LedgerStore, None]:
    """
    FastAPI dependency to get the ledger store.

    Usage:
        @router.get("/")
        async def endpoint(ledger: LedgerStore = Depends(get_db)):
            ...
    """
    yield get_ledger_store()
