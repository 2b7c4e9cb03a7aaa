"""
Shared pytest fixtures: a seeded temporary archive, a statement recorder
and an HTTP client bound to the FastAPI app.
"""

import os

os.environ.setdefault("ARCHIVER_LOG_FILE", os.devnull)

import httpx
import pytest

from archive_data import seed_archive
from archive_viewer.core.cache import Caches
from archive_viewer.core.config import DATABASE_FILENAME, ApplicationConfig
from archive_viewer.database import ArchiveManager


@pytest.fixture
async def archive_path(tmp_path):
    """Directory holding a seeded archive; the connection used to seed it is closed."""
    manager = ArchiveManager(str(tmp_path / DATABASE_FILENAME))
    await manager.initialize(create=True)
    async with manager.transaction() as db:
        await seed_archive(db)
    await manager.close()
    return tmp_path


@pytest.fixture
async def archive(archive_path):
    manager = ArchiveManager(str(archive_path / DATABASE_FILENAME))
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def caches():
    return Caches()


@pytest.fixture
async def statements(archive):
    """Every SQL statement the archive connection runs from here on."""
    executed = []
    async with archive.connection() as db:
        await db.set_trace_callback(executed.append)
    yield executed
    async with archive.connection() as db:
        await db.set_trace_callback(None)


def selects(executed):
    return [sql for sql in executed if sql.lstrip().upper().startswith("SELECT")]


@pytest.fixture
def count_selects(statements):
    return lambda: len(selects(statements))


@pytest.fixture
async def fts_archive(archive):
    """The seeded archive with its full-text index enabled."""
    try:
        await archive.sync_full_text_search(True)
    except Exception as e:
        pytest.skip(f"SQLite build without FTS5: {e}")
    return archive


@pytest.fixture
async def client(archive_path):
    from archive_viewer.core.state import app_state
    from archive_viewer.main import app

    config = ApplicationConfig(
        archive_path=archive_path,
        resource_url="https://static.example.com/archiver",
    )
    await app_state.initialize(config)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    await app_state.shutdown()
