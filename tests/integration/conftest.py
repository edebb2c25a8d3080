"""Fixtures for integration tests against a migrated SQLite database."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from alembic.config import Config
from classpkg.db import SqlClassStore, _get_engine
from classpkg.db.migrations import alembic_config as _alembic_config
from classpkg.db.migrations import run_migrations


@pytest.fixture
def test_db_url(tmp_path: Path) -> str:
    """Async connection URL for a per-test database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def alembic_config(test_db_url: str) -> Config:
    """Alembic config pointed at the test database."""
    return _alembic_config(test_db_url)


@pytest.fixture
def _run_migrations(test_db_url: str) -> None:
    run_migrations(test_db_url)


@pytest_asyncio.fixture
async def database(_run_migrations: None, test_db_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test engine so each event loop gets its own connection pool."""
    engine = _get_engine(test_db_url)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(database: AsyncEngine) -> SqlClassStore:
    return SqlClassStore(database)
