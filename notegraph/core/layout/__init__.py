"""Automatic canvas layout."""

from notegraph.core.layout.radial import radial_layout, rank_by_degree, ring_capacity

__all__ = [
    "radial_layout",
    "rank_by_degree",
    "ring_capacity",
]
