"""
Data models for NoteGraph.

Core models:
- Note: A titled node placed on the canvas
- Link: Canonical undirected edge between two notes
- Graph: Notes plus links, as returned by listing and auto-layout
"""

from notegraph.models.note import Graph, Link, Note

__all__ = [
    "Note",
    "Link",
    "Graph",
]
