"""Shared fixtures and helpers for tests."""

from pathlib import Path

import pytest
import pytest_asyncio

from docpage.db import InMemoryDocumentStore

_TESTS_ROOT = Path(__file__).parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        parts = test_path.relative_to(_TESTS_ROOT).parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def in_memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest_asyncio.fixture
async def numbered_store(in_memory_store: InMemoryDocumentStore) -> InMemoryDocumentStore:
    """Thirty records with ids 1..30 in the ``items`` collection."""
    await in_memory_store.insert_many("items", [{"n": i} for i in range(1, 31)])
    return in_memory_store
