"""
Shared test fixtures.

Every store lives under pytest's tmp_path, so each test starts from an
empty database and an empty search index.
"""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest

from notegraph.config import Config, LoggingConfig, StorageConfig
from notegraph.core.graph_store.sqlite_store import SQLiteNoteStore
from notegraph.core.search_index.fts_index import FTSSearchIndex
from notegraph.models.note import Note
from notegraph.services.graph_service import GraphService


@pytest.fixture
def test_config(tmp_path) -> Config:
    """Config rooted at a temporary data directory."""
    return Config(
        storage=StorageConfig(data_dir=str(tmp_path / "data")),
        logging=LoggingConfig(level="WARNING", log_to_file=False),
    )


@pytest.fixture
async def note_store(tmp_path) -> AsyncGenerator[SQLiteNoteStore, None]:
    """Initialized SQLite note store."""
    store = SQLiteNoteStore(db_path=tmp_path / "notes.db")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
async def search_index(tmp_path) -> AsyncGenerator[FTSSearchIndex, None]:
    """Opened, empty search index."""
    index = FTSSearchIndex(index_dir=tmp_path / "search-index")
    await index.open()
    yield index
    await index.close()


@pytest.fixture
async def graph_service(test_config) -> AsyncGenerator[GraphService, None]:
    """Initialized graph service."""
    service = GraphService.from_config(test_config)
    await service.initialize()
    yield service
    await service.close()


def make_note(note_id: int, title: str, subtitle: str = "", content: str = "") -> Note:
    """Build a note without touching any store."""
    return Note(
        id=note_id,
        title=title,
        subtitle=subtitle,
        content=content,
        x=0.0,
        y=0.0,
        updated_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def note_factory():
    """Factory for standalone Note objects."""
    return make_note
