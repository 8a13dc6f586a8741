"""
Full-text search index backed by SQLite FTS5.

The index lives in its own directory, separate from the note database,
and holds one document per note (rowid = note id). It is a rebuildable
projection: nothing in it is authoritative.
"""

import re
import sqlite3
from collections.abc import Iterable
from pathlib import Path

import aiosqlite

from notegraph.models.note import Note
from notegraph.utils.logger import get_logger, log_context

logger = get_logger(__name__)

INDEX_FILENAME = "notes.fts.db"
INDEX_FILE_SUFFIXES = ("", "-wal", "-shm", "-journal")

QUERY_OPERATORS = {"AND", "OR", "NOT", "+"}
QUERY_TOKEN = re.compile(r'"[^"]*"|\S+')


def any_term_expression(query: str) -> str:
    """
    Rewrite a query so adjacent terms match if any of them matches.

    FTS5 treats `apple banana` as `apple AND banana`; this turns it into
    `apple OR banana`. Quoted phrases, explicit operators, column filters
    and parentheses are kept as written.

    Examples:
        apple banana        -> apple OR banana
        "foo bar" baz       -> "foo bar" OR baz
        apple AND banana    -> apple AND banana
        (a b) NOT c         -> (a OR b) NOT c
    """
    terms: list[str] = []
    for token in QUERY_TOKEN.findall(query):
        if terms:
            previous = terms[-1]
            if (
                previous not in QUERY_OPERATORS
                and token not in QUERY_OPERATORS
                and not previous.endswith("(")
                and not token.startswith(")")
            ):
                terms.append("OR")
        terms.append(token)

    return " ".join(terms)


class FTSSearchIndex:
    """
    Inverted index over note title, subtitle and content.

    Features:
    - bm25 relevance ordering
    - FTS5 query syntax (phrases, prefixes, column filters, boolean operators)
    - Literal phrase fallback for queries FTS5 cannot parse
    - Self-healing open: an unreadable index is wiped and recreated
    """

    def __init__(self, index_dir: str | Path = "data/search-index"):
        """
        Initialize search index.

        Args:
            index_dir: Directory holding the index files
        """
        self.index_dir = Path(index_dir)
        self.index_path = self.index_dir / INDEX_FILENAME
        self.connection: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Open the index, creating it if missing and recreating it if corrupted."""
        if self.connection is not None:
            return

        self.index_dir.mkdir(parents=True, exist_ok=True)
        try:
            await self._open_connection()
        except sqlite3.DatabaseError as e:
            await self._recreate(e)

    async def _recreate(self, cause: Exception) -> None:
        """Discard the index files and start from an empty index."""
        log_context(logger, index_dir=str(self.index_dir)).warning(
            f"Search index at {self.index_dir} is unreadable, recreating: {cause}"
        )
        await self.close()
        for suffix in INDEX_FILE_SUFFIXES:
            Path(f"{self.index_path}{suffix}").unlink(missing_ok=True)
        await self._open_connection()

    async def _open_connection(self) -> None:
        self.connection = await aiosqlite.connect(str(self.index_path))
        await self.connection.execute("PRAGMA journal_mode = WAL")
        await self.connection.execute(
            """
            CREATE VIRTUAL TABLE IF NOT EXISTS note_documents USING fts5(
                title, subtitle, content,
                tokenize = 'porter unicode61 remove_diacritics 2'
            )
        """
        )
        await self.connection.commit()

    async def close(self) -> None:
        """Close the connection."""
        if self.connection is not None:
            await self.connection.close()
            self.connection = None

    async def rebuild(self, notes: Iterable[Note]) -> None:
        """
        Replace every document with one per supplied note.

        A corrupted index found while rebuilding is recreated and filled once more.
        """
        await self.open()

        rows = [(note.id, note.title, note.subtitle, note.content) for note in notes]
        try:
            await self._replace_all(rows)
        except sqlite3.DatabaseError as e:
            await self._recreate(e)
            await self._replace_all(rows)

        logger.info(f"Search index rebuilt with {len(rows)} documents")

    async def _replace_all(self, rows: list[tuple[int, str, str, str]]) -> None:
        try:
            await self.connection.execute("DELETE FROM note_documents")
            await self.connection.executemany(
                "INSERT INTO note_documents (rowid, title, subtitle, content) VALUES (?, ?, ?, ?)",
                rows,
            )
        except BaseException:
            await self.connection.rollback()
            raise
        await self.connection.commit()

    async def upsert_note(self, note: Note) -> None:
        """Replace the document for a note with its current fields."""
        await self.open()

        try:
            await self.connection.execute(
                "DELETE FROM note_documents WHERE rowid = ?", (note.id,)
            )
            await self.connection.execute(
                "INSERT INTO note_documents (rowid, title, subtitle, content) VALUES (?, ?, ?, ?)",
                (note.id, note.title, note.subtitle, note.content),
            )
        except BaseException:
            await self.connection.rollback()
            raise
        await self.connection.commit()

    async def delete_note(self, note_id: int) -> None:
        """Remove the document for a note."""
        await self.open()

        await self.connection.execute("DELETE FROM note_documents WHERE rowid = ?", (note_id,))
        await self.connection.commit()

    async def count(self) -> int:
        """Number of indexed documents."""
        await self.open()

        cursor = await self.connection.execute("SELECT COUNT(*) FROM note_documents")
        row = await cursor.fetchone()

        return row[0] if row else 0

    async def search_ids(self, query: str, limit: int) -> list[int]:
        """
        Note IDs matching a query, best match first.

        The query is tried as FTS5 syntax first, with bare adjacent terms
        joined by OR. If FTS5 rejects it, the whole query is retried as one
        literal phrase with double quotes removed.

        Args:
            query: User query
            limit: Maximum number of IDs

        Returns:
            Note IDs ordered by descending relevance
        """
        query = query.strip()
        if not query or limit <= 0:
            return []

        await self.open()

        try:
            return await self._match(any_term_expression(query), limit)
        except sqlite3.OperationalError as e:
            logger.debug(f"Query {query!r} rejected by FTS5 ({e}), retrying as phrase")

        phrase = query.replace('"', " ").strip()
        if not phrase:
            return []
        return await self._match(f'"{phrase}"', limit)

    async def _match(self, match_expr: str, limit: int) -> list[int]:
        cursor = await self.connection.execute(
            """
            SELECT rowid
            FROM note_documents
            WHERE note_documents MATCH ?
            ORDER BY rank
            LIMIT ?
            """,
            (match_expr, limit),
        )
        rows = await cursor.fetchall()

        return [row[0] for row in rows]
