"""Canonical form for undirected links."""

from notegraph.utils.exceptions import InvalidEdgeError


def normalize_edge(a: int, b: int) -> tuple[int, int]:
    """
    Order an unordered pair of note IDs as (smaller, larger).

    Args:
        a: One endpoint
        b: The other endpoint

    Returns:
        (source_id, target_id) with source_id < target_id

    Raises:
        InvalidEdgeError: If both endpoints are the same note
    """
    if a == b:
        raise InvalidEdgeError(
            "a note cannot link to itself", context={"note_id": a}
        )

    if a < b:
        return (a, b)
    return (b, a)
