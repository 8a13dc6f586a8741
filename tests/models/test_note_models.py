"""Tests for the note, link and graph models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from notegraph.models import Graph, Link, Note


class TestNote:
    """Tests for the Note model."""

    def test_defaults(self):
        note = Note(id=1, title="Only a title", updated_at=datetime.now(timezone.utc))

        assert note.subtitle == ""
        assert note.content == ""
        assert (note.x, note.y) == (0.0, 0.0)

    def test_serializes_camel_case(self):
        """Test the wire format uses camelCase names."""
        note = Note(id=1, title="T", updated_at=datetime(2024, 5, 1, tzinfo=timezone.utc))

        data = note.model_dump(by_alias=True)

        assert "updatedAt" in data
        assert "updated_at" not in data

    def test_accepts_both_names(self):
        """Test camelCase and snake_case inputs build the same note."""
        stamp = datetime(2024, 5, 1, tzinfo=timezone.utc)

        assert Note(id=1, title="T", updatedAt=stamp) == Note(id=1, title="T", updated_at=stamp)


class TestLink:
    """Tests for the Link model."""

    def test_serializes_camel_case(self):
        assert Link(source_id=1, target_id=2).model_dump(by_alias=True) == {
            "sourceId": 1,
            "targetId": 2,
        }

    def test_frozen(self):
        """Test links are immutable and hashable."""
        link = Link(source_id=1, target_id=2)

        with pytest.raises(PydanticValidationError):
            link.source_id = 5
        assert {link, Link(source_id=1, target_id=2)} == {link}


class TestGraph:
    def test_empty_graph(self):
        assert Graph().model_dump(by_alias=True) == {"notes": [], "links": []}
