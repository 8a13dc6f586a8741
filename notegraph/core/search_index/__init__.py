"""
Full-text search index for NoteGraph.

Mirrors note content from the relational store; fully rebuildable from it.
"""

from notegraph.core.search_index.fts_index import FTSSearchIndex

__all__ = [
    "FTSSearchIndex",
]
