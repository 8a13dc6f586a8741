"""
NoteGraph - a personal knowledge graph backend.

Notes on a 2D canvas, undirected links between them, full-text search,
and degree-ranked automatic layout.
"""

__version__ = "1.0.0"
