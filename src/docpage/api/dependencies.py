from __future__ import annotations

from collections.abc import AsyncIterator

from docpage.core.ports.store import DocumentStore
from docpage.db.engine import get_engine
from docpage.db.postgres import PostgresDocumentStore

_store: PostgresDocumentStore | None = None


async def get_store() -> AsyncIterator[DocumentStore]:
    """Yield a ``DocumentStore`` instance, creating it lazily on first call."""
    global _store  # noqa: PLW0603
    if _store is None:
        _store = PostgresDocumentStore(get_engine())
    yield _store


async def shutdown_store() -> None:
    global _store  # noqa: PLW0603
    if _store is not None:
        await _store.dispose()
        _store = None
