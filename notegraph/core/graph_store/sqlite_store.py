"""
SQLite note store - the source of truth for notes and links.

Async implementation using aiosqlite. Multi-statement writes run in a
single transaction; raw sqlite errors propagate to the caller.
"""

import math
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from notegraph.core.graph_store.links import normalize_edge
from notegraph.core.layout.radial import radial_layout
from notegraph.models.note import Graph, Link, Note
from notegraph.utils.exceptions import NotFoundError, ValidationError
from notegraph.utils.logger import get_logger, log_context

logger = get_logger(__name__)

NOTE_COLUMNS = "id, title, subtitle, content, x, y, updated_at"

SPAWN_SLOTS = 8
SPAWN_SPACING = 140.0


def default_spawn_position(count: int) -> tuple[float, float]:
    """
    Position for a new note when the caller gives none.

    Notes spawn eight to a ring, rings 140 apart, starting one ring out
    from the origin.

    Args:
        count: Number of notes that exist before the insert

    Returns:
        (x, y)
    """
    ring = count // SPAWN_SLOTS + 1
    slot = count % SPAWN_SLOTS
    angle = (slot / SPAWN_SLOTS) * math.tau
    radius = ring * SPAWN_SPACING
    return (radius * math.cos(angle), radius * math.sin(angle))


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SQLiteNoteStore:
    """
    SQLite-based store for notes and the links between them.

    Features:
    - Canonical undirected links (one row per unordered pair)
    - Explicit last-modified timestamps on attribute-changing writes
    - Atomic note creation, link reconciliation and auto-layout
    """

    def __init__(self, db_path: str | Path = "data/graphalfred.db"):
        """
        Initialize SQLite note store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = str(db_path)
        self.connection: aiosqlite.Connection | None = None

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Establish connection to SQLite."""
        if self.connection is None:
            self.connection = await aiosqlite.connect(self.db_path)
            await self.connection.execute("PRAGMA foreign_keys = ON")
            await self.connection.execute("PRAGMA journal_mode = WAL")
            await self.connection.commit()

    async def initialize(self) -> None:
        """Initialize database schema."""
        await self.connect()

        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS notes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                subtitle TEXT NOT NULL DEFAULT '',
                content TEXT NOT NULL DEFAULT '',
                x REAL NOT NULL DEFAULT 0,
                y REAL NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """
        )

        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS links (
                source_id INTEGER NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
                target_id INTEGER NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
                PRIMARY KEY (source_id, target_id),
                CHECK (source_id < target_id)
            )
        """
        )

        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_notes_updated ON notes(updated_at)"
        )
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_links_target ON links(target_id)"
        )

        await self.connection.commit()
        logger.debug(f"Note store schema ready at {self.db_path}")

    async def close(self) -> None:
        """Close the connection."""
        if self.connection is not None:
            await self.connection.close()
            self.connection = None

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Commit everything written inside the block, or nothing."""
        await self.connect()
        try:
            yield self.connection
        except BaseException:
            await self.connection.rollback()
            raise
        else:
            await self.connection.commit()

    # ═══════════════════════════════════════════════════════════
    # READS
    # ═══════════════════════════════════════════════════════════

    async def list_notes(self) -> list[Note]:
        """All notes, most recently modified first."""
        await self.connect()

        cursor = await self.connection.execute(
            f"SELECT {NOTE_COLUMNS} FROM notes ORDER BY updated_at DESC, id DESC"
        )
        rows = await cursor.fetchall()

        return [self._row_to_note(row) for row in rows]

    async def get_note(self, note_id: int) -> Note | None:
        """Retrieve a note by ID."""
        await self.connect()

        cursor = await self.connection.execute(
            f"SELECT {NOTE_COLUMNS} FROM notes WHERE id = ?", (note_id,)
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return self._row_to_note(row)

    async def note_exists(self, note_id: int) -> bool:
        """Check whether a note exists."""
        await self.connect()

        cursor = await self.connection.execute(
            "SELECT EXISTS(SELECT 1 FROM notes WHERE id = ?)", (note_id,)
        )
        row = await cursor.fetchone()

        return bool(row and row[0])

    async def count_notes(self) -> int:
        """Count notes."""
        await self.connect()

        cursor = await self.connection.execute("SELECT COUNT(*) FROM notes")
        row = await cursor.fetchone()

        return row[0] if row else 0

    async def list_links(self) -> list[Link]:
        """All links ordered by (source_id, target_id)."""
        await self.connect()

        cursor = await self.connection.execute(
            "SELECT source_id, target_id FROM links ORDER BY source_id ASC, target_id ASC"
        )
        rows = await cursor.fetchall()

        return [Link(source_id=row[0], target_id=row[1]) for row in rows]

    async def graph(self) -> Graph:
        """Notes and links together."""
        return Graph(notes=await self.list_notes(), links=await self.list_links())

    async def search_substring(self, query: str, limit: int) -> list[Note]:
        """
        Case-insensitive substring match over title, subtitle and content.

        Args:
            query: Literal text to look for (LIKE wildcards are escaped)
            limit: Maximum number of notes

        Returns:
            Matching notes, most recently modified first
        """
        query = query.strip()
        if not query or limit <= 0:
            return []

        await self.connect()

        pattern = _like_pattern(query)
        cursor = await self.connection.execute(
            f"""
            SELECT {NOTE_COLUMNS}
            FROM notes
            WHERE title LIKE ? ESCAPE '\\'
               OR subtitle LIKE ? ESCAPE '\\'
               OR content LIKE ? ESCAPE '\\'
            ORDER BY updated_at DESC, id DESC
            LIMIT ?
            """,
            (pattern, pattern, pattern, limit),
        )
        rows = await cursor.fetchall()

        return [self._row_to_note(row) for row in rows]

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
        Insert a note and link it to its related notes.

        Without both coordinates the note gets a default spawn position.

        Raises:
            ValidationError: If the title is blank or a related note doesn't exist
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("title cannot be empty")

        async with self._transaction() as conn:
            if x is None or y is None:
                x, y = default_spawn_position(await self.count_notes())

            now = _timestamp()
            cursor = await conn.execute(
                """
                INSERT INTO notes (title, subtitle, content, x, y, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (title, subtitle or "", content or "", x, y, now, now),
            )
            note_id = cursor.lastrowid

            for related_id in dict.fromkeys(related_ids or ()):
                if related_id != note_id:
                    await self._insert_link(note_id, related_id)

        log_context(logger, note_id=note_id).info(f"Note created: {note_id}")
        return await self._require_note(note_id)

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
        Replace every field of a note.

        When related_ids is given the note's links are reconciled to match it.

        Raises:
            ValidationError: If the title is blank
            NotFoundError: If the note doesn't exist
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("title cannot be empty")

        async with self._transaction() as conn:
            cursor = await conn.execute(
                """
                UPDATE notes
                SET title = ?, subtitle = ?, content = ?, x = ?, y = ?, updated_at = ?
                WHERE id = ?
                """,
                (title, subtitle or "", content or "", x, y, _timestamp(), note_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"note {note_id} not found", context={"note_id": note_id})

            if related_ids is not None:
                await self._reconcile_links(note_id, related_ids)

        log_context(logger, note_id=note_id).info(f"Note updated: {note_id}")
        return await self._require_note(note_id)

    async def update_position(self, note_id: int, x: float, y: float) -> Note:
        """
        Move a note. Leaves updated_at untouched.

        Raises:
            NotFoundError: If the note doesn't exist
        """
        async with self._transaction() as conn:
            cursor = await conn.execute(
                "UPDATE notes SET x = ?, y = ? WHERE id = ?", (x, y, note_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"note {note_id} not found", context={"note_id": note_id})

        return await self._require_note(note_id)

    async def delete_note(self, note_id: int) -> bool:
        """Delete a note and every link touching it. Returns whether it existed."""
        async with self._transaction() as conn:
            await conn.execute(
                "DELETE FROM links WHERE source_id = ? OR target_id = ?", (note_id, note_id)
            )
            cursor = await conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            log_context(logger, note_id=note_id).info(f"Note deleted: {note_id}")
        return deleted

    # ═══════════════════════════════════════════════════════════
    # LINK WRITES
    # ═══════════════════════════════════════════════════════════

    async def create_link(self, a: int, b: int) -> Link:
        """
        Link two notes. Creating an existing link is a no-op.

        Raises:
            InvalidEdgeError: If a == b
            ValidationError: If either note doesn't exist
        """
        async with self._transaction():
            link = await self._insert_link(a, b)

        return link

    async def delete_link(self, a: int, b: int) -> bool:
        """Remove the link between two notes. Returns whether it existed."""
        source_id, target_id = normalize_edge(a, b)

        async with self._transaction() as conn:
            cursor = await conn.execute(
                "DELETE FROM links WHERE source_id = ? AND target_id = ?",
                (source_id, target_id),
            )

        return cursor.rowcount > 0

    async def sync_related_links(self, note_id: int, related_ids: Iterable[int]) -> None:
        """
        Make a note's links exactly match its related IDs.

        Self references and IDs of missing notes are skipped.

        Raises:
            NotFoundError: If the note itself doesn't exist
        """
        async with self._transaction():
            if not await self.note_exists(note_id):
                raise NotFoundError(f"note {note_id} not found", context={"note_id": note_id})
            await self._reconcile_links(note_id, related_ids)

    async def _insert_link(self, a: int, b: int) -> Link:
        source_id, target_id = normalize_edge(a, b)

        if not await self.note_exists(source_id) or not await self.note_exists(target_id):
            raise ValidationError(
                "both notes must exist before linking",
                context={"source_id": source_id, "target_id": target_id},
            )

        await self.connection.execute(
            "INSERT OR IGNORE INTO links (source_id, target_id) VALUES (?, ?)",
            (source_id, target_id),
        )

        return Link(source_id=source_id, target_id=target_id)

    async def _reconcile_links(self, note_id: int, related_ids: Iterable[int]) -> None:
        desired: set[tuple[int, int]] = set()
        for related_id in related_ids:
            if related_id == note_id:
                continue
            if await self.note_exists(related_id):
                desired.add(normalize_edge(note_id, related_id))

        cursor = await self.connection.execute(
            "SELECT source_id, target_id FROM links WHERE source_id = ? OR target_id = ?",
            (note_id, note_id),
        )
        current = {(row[0], row[1]) for row in await cursor.fetchall()}

        stale = current - desired
        missing = desired - current

        for source_id, target_id in stale:
            await self.connection.execute(
                "DELETE FROM links WHERE source_id = ? AND target_id = ?",
                (source_id, target_id),
            )

        for source_id, target_id in missing:
            await self.connection.execute(
                "INSERT OR IGNORE INTO links (source_id, target_id) VALUES (?, ?)",
                (source_id, target_id),
            )

        log_context(logger, note_id=note_id).debug(
            f"Links reconciled for note {note_id}: -{len(stale)} +{len(missing)}"
        )

    # ═══════════════════════════════════════════════════════════
    # LAYOUT
    # ═══════════════════════════════════════════════════════════

    async def auto_layout(self) -> Graph:
        """
        Re-arrange every note with the radial layout.

        All positions are written in one transaction. Leaves updated_at untouched.
        """
        async with self._transaction() as conn:
            notes = await self.list_notes()
            if notes:
                links = await self.list_links()
                positions = radial_layout([note.id for note in notes], links)
                await conn.executemany(
                    "UPDATE notes SET x = ?, y = ? WHERE id = ?",
                    [(x, y, note_id) for note_id, (x, y) in positions.items()],
                )

        logger.info(f"Auto-layout applied to {len(notes)} notes")
        return await self.graph()

    # ═══════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════

    async def _require_note(self, note_id: int) -> Note:
        note = await self.get_note(note_id)
        if note is None:
            raise NotFoundError(f"note {note_id} not found", context={"note_id": note_id})
        return note

    def _row_to_note(self, row: tuple) -> Note:
        """Convert database row to Note object."""
        return Note(
            id=row[0],
            title=row[1],
            subtitle=row[2],
            content=row[3],
            x=row[4],
            y=row[5],
            updated_at=datetime.fromisoformat(row[6]),
        )
