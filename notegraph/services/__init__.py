"""Service layer for NoteGraph."""

from notegraph.services.graph_service import GraphService

__all__ = [
    "GraphService",
]
