"""
Note and link models.

Notes are the nodes of the knowledge graph: a titled piece of text placed
on the canvas. Links are undirected edges between two notes, always kept
in canonical form (smaller id first).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Note(BaseModel):
    """
    A note on the canvas.

    Storage Architecture:
    - Relational store: every field (SOURCE OF TRUTH)
    - Search index: id, title, subtitle, content (rebuildable projection)
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int = Field(..., description="Monotonic note ID, never reused")
    title: str = Field(..., description="Non-empty title (stored trimmed)")
    subtitle: str = Field(default="", description="Optional subtitle")
    content: str = Field(default="", description="Free-form note body")

    # Canvas position
    x: float = Field(default=0.0, description="Horizontal canvas coordinate")
    y: float = Field(default=0.0, description="Vertical canvas coordinate")

    updated_at: datetime = Field(..., description="Last attribute-changing write")


class Link(BaseModel):
    """Undirected edge between two notes, stored with source_id < target_id."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    source_id: int
    target_id: int


class Graph(BaseModel):
    """Full graph snapshot: notes by recency, links by (source, target)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    notes: list[Note] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
