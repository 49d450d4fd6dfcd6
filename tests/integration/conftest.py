"""Session-scoped fixtures for integration tests."""

import warnings
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from testcontainers.core.container import DockerContainer
from testcontainers.core.waiting_utils import wait_for_logs

from docpage.db import PostgresDocumentStore, documents


@pytest.fixture(scope="session")
def postgres_container() -> Generator[DockerContainer, None, None]:
    """Start a plain Postgres container for the session."""
    container = DockerContainer("postgres:16").with_exposed_ports(5432).with_env("POSTGRES_PASSWORD", "postgres")
    container.start()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DeprecationWarning)
        # the init script restarts the server once, so wait for the second ready line
        wait_for_logs(container, r"ready to accept connections(.|\n)*ready to accept connections", timeout=60)
    yield container
    container.stop()


@pytest.fixture(scope="session")
def test_db_url(postgres_container: DockerContainer) -> str:
    """Async connection URL for the test database."""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    return f"postgresql+asyncpg://postgres:postgres@{host}:{port}/postgres"


@pytest_asyncio.fixture
async def engine(test_db_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test engine so each event loop gets its own connection pool."""
    instance = create_async_engine(test_db_url)
    yield instance
    await instance.dispose()


@pytest_asyncio.fixture
async def store(engine: AsyncEngine) -> AsyncGenerator[PostgresDocumentStore, None]:
    """Per-test store over an empty documents table."""
    instance = PostgresDocumentStore(engine)
    await instance.ensure_ready()
    yield instance
    async with engine.begin() as conn:
        await conn.execute(sa.delete(documents))
