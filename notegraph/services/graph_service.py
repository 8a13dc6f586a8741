"""
Graph Service - single entry point for every note, link and search operation.

Owns the relational note store and the full-text search index and keeps
them consistent:
- Every operation runs inside one process-wide critical section
- Relational writes commit first, then the index is updated
- On startup the index is rebuilt from the relational store
- Raw storage failures are classified before they leave the service
"""

import asyncio
import sqlite3
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, TypeVar

from notegraph.config import Config
from notegraph.core.graph_store.sqlite_store import SQLiteNoteStore
from notegraph.core.search_index.fts_index import FTSSearchIndex
from notegraph.models.note import Graph, Link, Note
from notegraph.utils.exceptions import (
    InternalError,
    NoteGraphError,
    NotFoundError,
    SearchSyncError,
    ServicePoisonedError,
)
from notegraph.utils.logger import get_logger, log_context

logger = get_logger(__name__)

T = TypeVar("T")


class GraphService:
    """
    Facade over the note store and the search index.

    Architecture:
    - Relational store: source of truth for notes and links
    - Search index: derived projection of note text, rebuilt on every start

    Consistency model:
    - No two operations interleave; a read never sees a relational write
      without its paired index write
    - An index write that fails after a relational commit raises
      SearchSyncError; the relational change stays committed and the next
      startup rebuild repairs the index
    - An unexpected error escaping an operation poisons the service:
      every later call raises ServicePoisonedError
    """

    def __init__(self, db_path: str | Path, index_dir: str | Path):
        """
        Initialize Graph Service.

        Args:
            db_path: SQLite database file for notes and links
            index_dir: Directory for the search index
        """
        self.store = SQLiteNoteStore(db_path)
        self.index = FTSSearchIndex(index_dir)
        self._lock = asyncio.Lock()
        self._poisoned_by: str | None = None

    @classmethod
    def from_config(cls, config: Config) -> "GraphService":
        """Create a service rooted at the configured data directory."""
        Path(config.storage.data_dir).mkdir(parents=True, exist_ok=True)
        return cls(db_path=config.storage.db_path, index_dir=config.storage.index_path)

    @property
    def poisoned(self) -> bool:
        return self._poisoned_by is not None

    async def initialize(self) -> None:
        """Open both stores and rebuild the search index from the note store."""
        logger.info("Initializing Graph Service")

        async with self._exclusive("initialize"):
            try:
                await self.store.initialize()
                await self.index.open()
                notes = await self.store.list_notes()
                await self.index.rebuild(notes)
            except BaseException:
                # Release connection threads before propagating
                await self.index.close()
                await self.store.close()
                raise

        logger.info(f"Graph Service ready ({len(notes)} notes indexed)")

    async def close(self) -> None:
        """Close both stores."""
        async with self._lock:
            await self.index.close()
            await self.store.close()

    @asynccontextmanager
    async def _exclusive(self, operation: str) -> AsyncIterator[None]:
        """Run one operation inside the critical section and classify its failures."""
        async with self._lock:
            if self._poisoned_by is not None:
                raise ServicePoisonedError(
                    "graph service unavailable after an aborted operation",
                    context={"operation": operation, "poisoned_by": self._poisoned_by},
                )

            try:
                yield
            except NoteGraphError:
                raise
            except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
                # Open transactions are rolled back on the way out
                log_context(logger, operation=operation).info(f"{operation} cancelled")
                raise
            except (sqlite3.Error, OSError) as e:
                log_context(logger, operation=operation, error_type=type(e).__name__).error(
                    f"{operation} failed: {e}"
                )
                raise InternalError(
                    f"{operation} failed",
                    context={"operation": operation, "error_type": type(e).__name__},
                ) from e
            except Exception as e:
                self._poisoned_by = f"{operation}: {type(e).__name__}"
                log_context(logger, operation=operation, error_type=type(e).__name__).critical(
                    f"{operation} aborted with unexpected error, service poisoned: {e!r}"
                )
                raise InternalError(
                    f"{operation} aborted",
                    context={"operation": operation, "error_type": type(e).__name__},
                ) from e

    async def _sync_index(
        self,
        operation: str,
        result: T,
        write: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> T:
        """Apply an index write after a committed relational change."""
        try:
            await write(*args)
        except (sqlite3.Error, OSError) as e:
            log_context(logger, operation=operation, error_type=type(e).__name__).error(
                f"Search index update failed after {operation}: {e}"
            )
            raise SearchSyncError(
                f"{operation} committed but the search index could not be updated",
                context={"operation": operation, "result": result},
            ) from e
        return result

    # ═══════════════════════════════════════════════════════════
    # READS
    # ═══════════════════════════════════════════════════════════

    async def graph(self) -> Graph:
        """All notes (most recent first) and all links."""
        async with self._exclusive("graph"):
            return await self.store.graph()

    async def get_note(self, note_id: int) -> Note:
        """
        Retrieve a note.

        Raises:
            NotFoundError: If the note doesn't exist
        """
        async with self._exclusive("get_note"):
            note = await self.store.get_note(note_id)

        if note is None:
            raise NotFoundError(f"note {note_id} not found", context={"note_id": note_id})
        return note

    async def search_notes(self, query: str, limit: int) -> list[Note]:
        """
        Find notes by text.

        Asks the search index first and returns its hits in relevance order.
        Only when the index finds nothing does it fall back to a substring
        scan of the note store.

        Args:
            query: Search text
            limit: Maximum number of notes

        Returns:
            Matching notes
        """
        query = query.strip()
        if not query or limit <= 0:
            return []

        async with self._exclusive("search_notes"):
            ids = await self.index.search_ids(query, limit)
            if ids:
                notes = []
                for note_id in ids:
                    note = await self.store.get_note(note_id)
                    if note is None:
                        logger.debug(f"Skipping stale index hit {note_id}")
                        continue
                    notes.append(note)
                return notes

            logger.debug(f"No index hits for {query!r}, falling back to substring scan")
            return await self.store.search_substring(query, limit)

    async def health(self) -> dict[str, Any]:
        """Counts from both stores."""
        async with self._exclusive("health"):
            return {
                "notes": await self.store.count_notes(),
                "indexed": await self.index.count(),
            }

    # ═══════════════════════════════════════════════════════════
    # NOTE WRITES
    # ═══════════════════════════════════════════════════════════

    async def create_note(
        self,
        title: str,
        subtitle: str | None = None,
        content: str | None = None,
        x: float | None = None,
        y: float | None = None,
        related_ids: Iterable[int] | None = None,
    ) -> Note:
        """
        Create a note, link it to its related notes and index it.

        Raises:
            ValidationError: If the title is blank or a related note doesn't exist
            SearchSyncError: If the note was stored but could not be indexed
        """
        async with self._exclusive("create_note"):
            note = await self.store.create_note(
                title=title,
                subtitle=subtitle,
                content=content,
                x=x,
                y=y,
                related_ids=related_ids,
            )
            return await self._sync_index("create_note", note, self.index.upsert_note, note)

    async def update_note(
        self,
        note_id: int,
        title: str,
        subtitle: str,
        content: str,
        x: float,
        y: float,
        related_ids: Iterable[int] | None = None,
    ) -> Note:
        """
        Replace a note's fields, optionally reconcile its links, and re-index it.

        Raises:
            ValidationError: If the title is blank
            NotFoundError: If the note doesn't exist
            SearchSyncError: If the note was stored but could not be re-indexed
        """
        async with self._exclusive("update_note"):
            note = await self.store.update_note(
                note_id,
                title=title,
                subtitle=subtitle,
                content=content,
                x=x,
                y=y,
                related_ids=related_ids,
            )
            return await self._sync_index("update_note", note, self.index.upsert_note, note)

    async def update_position(self, note_id: int, x: float, y: float) -> Note:
        """
        Move a note. The index is not touched.

        Raises:
            NotFoundError: If the note doesn't exist
        """
        async with self._exclusive("update_position"):
            return await self.store.update_position(note_id, x, y)

    async def delete_note(self, note_id: int) -> bool:
        """Delete a note, its links and its index document. Returns whether it existed."""
        async with self._exclusive("delete_note"):
            removed = await self.store.delete_note(note_id)
            if not removed:
                return False
            return await self._sync_index("delete_note", True, self.index.delete_note, note_id)

    # ═══════════════════════════════════════════════════════════
    # LINKS & LAYOUT
    # ═══════════════════════════════════════════════════════════

    async def create_link(self, source_id: int, target_id: int) -> Link:
        """
        Link two notes (idempotent).

        Raises:
            ValidationError: On a self-link or a missing endpoint
        """
        async with self._exclusive("create_link"):
            return await self.store.create_link(source_id, target_id)

    async def delete_link(self, source_id: int, target_id: int) -> bool:
        """Unlink two notes. Returns whether a link existed."""
        async with self._exclusive("delete_link"):
            return await self.store.delete_link(source_id, target_id)

    async def auto_layout(self) -> Graph:
        """Re-arrange every note by degree and return the new graph."""
        async with self._exclusive("auto_layout"):
            return await self.store.auto_layout()
