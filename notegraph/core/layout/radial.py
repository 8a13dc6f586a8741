"""
Degree-ranked radial layout.

Notes are sorted by how many links touch them and placed on concentric
rings around the origin: the best-connected note sits at the centre,
ring r holds up to 6r notes spaced evenly at radius 180r. No physics,
same input always gives the same output.
"""

import math
from collections import Counter
from collections.abc import Iterable, Sequence

from notegraph.models.note import Link

RING_SPACING = 180.0
SLOTS_PER_RING = 6


def ring_capacity(ring: int) -> int:
    """Number of notes ring `ring` can hold (1 for the centre)."""
    if ring == 0:
        return 1
    return ring * SLOTS_PER_RING


def rank_by_degree(note_ids: Sequence[int], links: Iterable[Link]) -> list[int]:
    """
    Sort note IDs by degree, highest first.

    Ties keep the order of `note_ids` (stable sort).
    """
    degree: Counter[int] = Counter()
    for link in links:
        degree[link.source_id] += 1
        degree[link.target_id] += 1

    return sorted(note_ids, key=lambda note_id: degree[note_id], reverse=True)


def radial_layout(
    note_ids: Sequence[int], links: Iterable[Link]
) -> dict[int, tuple[float, float]]:
    """
    Compute canvas positions for every note.

    Args:
        note_ids: Notes to place, in their current listing order
        links: Links between those notes

    Returns:
        Mapping of note ID to (x, y)
    """
    ranked = rank_by_degree(note_ids, links)
    positions: dict[int, tuple[float, float]] = {}

    cursor = 0
    ring = 0
    while cursor < len(ranked):
        if ring == 0:
            positions[ranked[cursor]] = (0.0, 0.0)
            cursor += 1
            ring += 1
            continue

        slots = ring_capacity(ring)
        radius = ring * RING_SPACING
        for slot in range(slots):
            if cursor >= len(ranked):
                break
            angle = (slot / slots) * math.tau
            positions[ranked[cursor]] = (radius * math.cos(angle), radius * math.sin(angle))
            cursor += 1

        ring += 1

    return positions
