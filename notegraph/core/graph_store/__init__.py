"""
Relational note store for NoteGraph.

Notes and their undirected links live in SQLite; this is the source of
truth the search index is rebuilt from.
"""

from notegraph.core.graph_store.links import normalize_edge
from notegraph.core.graph_store.sqlite_store import SQLiteNoteStore, default_spawn_position

__all__ = [
    "SQLiteNoteStore",
    "default_spawn_position",
    "normalize_edge",
]
