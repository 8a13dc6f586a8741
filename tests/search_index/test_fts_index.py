"""Tests for the FTS5 search index."""

import pytest

from notegraph.core.search_index.fts_index import (
    INDEX_FILENAME,
    FTSSearchIndex,
    any_term_expression,
)


@pytest.mark.asyncio
class TestFTSSearchIndex:
    """Tests for indexing and querying note documents."""

    async def test_open_creates_directory(self, tmp_path):
        """Test opening a missing index creates it."""
        index = FTSSearchIndex(index_dir=tmp_path / "nested" / "index")
        await index.open()

        assert (tmp_path / "nested" / "index" / INDEX_FILENAME).exists()
        assert await index.count() == 0
        await index.close()

    async def test_upsert_and_search(self, search_index, note_factory):
        """Test an upserted note is searchable by any indexed field."""
        await search_index.upsert_note(
            note_factory(1, "Rust ownership", subtitle="borrow checker", content="lifetimes")
        )

        assert await search_index.search_ids("ownership", 10) == [1]
        assert await search_index.search_ids("borrow", 10) == [1]
        assert await search_index.search_ids("lifetimes", 10) == [1]

    async def test_upsert_replaces_document(self, search_index, note_factory):
        """Test re-upserting a note keeps one document with the new text."""
        await search_index.upsert_note(note_factory(1, "Old title"))
        await search_index.upsert_note(note_factory(1, "New title"))

        assert await search_index.count() == 1
        assert await search_index.search_ids("old", 10) == []
        assert await search_index.search_ids("new", 10) == [1]

    async def test_delete_note(self, search_index, note_factory):
        """Test a deleted note no longer matches."""
        await search_index.upsert_note(note_factory(1, "Ephemeral"))
        await search_index.delete_note(1)

        assert await search_index.search_ids("ephemeral", 10) == []
        assert await search_index.count() == 0

    async def test_delete_missing_note(self, search_index):
        """Test deleting an unindexed note is harmless."""
        await search_index.delete_note(404)
        assert await search_index.count() == 0

    async def test_rebuild_replaces_everything(self, search_index, note_factory):
        """Test rebuild drops old documents and indexes the given notes."""
        await search_index.upsert_note(note_factory(1, "Stale entry"))

        await search_index.rebuild([note_factory(2, "Fresh one"), note_factory(3, "Fresh two")])

        assert await search_index.count() == 2
        assert await search_index.search_ids("stale", 10) == []
        assert sorted(await search_index.search_ids("fresh", 10)) == [2, 3]

    async def test_relevance_order(self, search_index, note_factory):
        """Test a stronger match ranks first."""
        await search_index.rebuild(
            [
                note_factory(1, "Cooking", content="a single mention of pasta among many other words here"),
                note_factory(2, "Pasta", subtitle="pasta recipes", content="pasta pasta"),
            ]
        )

        assert await search_index.search_ids("pasta", 10) == [2, 1]

    async def test_limit(self, search_index, note_factory):
        """Test results are truncated to the limit."""
        await search_index.rebuild([note_factory(i, f"common {i}") for i in range(1, 6)])

        assert len(await search_index.search_ids("common", 2)) == 2
        assert await search_index.search_ids("common", 0) == []

    @pytest.mark.parametrize("query", ["", "   ", "\t\n"])
    async def test_blank_query(self, search_index, note_factory, query):
        """Test blank queries return nothing without error."""
        await search_index.upsert_note(note_factory(1, "Anything"))

        assert await search_index.search_ids(query, 10) == []

    async def test_structured_query(self, search_index, note_factory):
        """Test FTS5 syntax such as column filters and OR works."""
        await search_index.rebuild(
            [
                note_factory(1, "apple", content="banana"),
                note_factory(2, "banana", content="cherry"),
            ]
        )

        assert await search_index.search_ids("title:banana", 10) == [2]
        assert sorted(await search_index.search_ids("apple OR cherry", 10)) == [1, 2]

    @pytest.mark.parametrize("query", ['"unbalanced quote', "C++ (templates", "foo-bar", "AND"])
    async def test_unparseable_query_falls_back_to_phrase(self, search_index, note_factory, query):
        """Test queries FTS5 rejects are retried as a literal phrase instead of failing."""
        await search_index.rebuild(
            [
                note_factory(1, "unbalanced quote handling"),
                note_factory(2, "C++ templates"),
                note_factory(3, "the foo bar pattern"),
            ]
        )

        ids = await search_index.search_ids(query, 10)

        assert isinstance(ids, list)

    async def test_phrase_fallback_matches(self, search_index, note_factory):
        """Test a punctuated query matches the adjacent words as a phrase."""
        await search_index.rebuild(
            [note_factory(1, "the foo bar pattern"), note_factory(2, "bar then foo")]
        )

        assert await search_index.search_ids("foo.bar", 10) == [1]

    async def test_corrupted_index_is_recreated(self, tmp_path, note_factory):
        """Test an unreadable index file is wiped on open."""
        index_dir = tmp_path / "search-index"
        index_dir.mkdir()
        (index_dir / INDEX_FILENAME).write_bytes(b"this is not a database" * 100)

        index = FTSSearchIndex(index_dir=index_dir)
        await index.open()
        await index.rebuild([note_factory(1, "Recovered")])

        assert await index.search_ids("recovered", 10) == [1]
        await index.close()

    async def test_persists_across_reopen(self, tmp_path, note_factory):
        """Test documents survive closing and reopening the index."""
        index = FTSSearchIndex(index_dir=tmp_path / "idx")
        await index.upsert_note(note_factory(7, "Durable"))
        await index.close()

        reopened = FTSSearchIndex(index_dir=tmp_path / "idx")
        assert await reopened.search_ids("durable", 10) == [7]
        await reopened.close()

    async def test_partial_term_match(self, search_index, note_factory):
        """Test a multi-word query finds notes matching only some of its words."""
        await search_index.rebuild(
            [
                note_factory(1, "apple orchard"),
                note_factory(2, "banana bread"),
                note_factory(3, "cherry pie"),
            ]
        )

        assert sorted(await search_index.search_ids("apple banana", 10)) == [1, 2]

    async def test_all_terms_rank_first(self, search_index, note_factory):
        """Test a note matching every word outranks one matching a single word."""
        await search_index.rebuild(
            [
                note_factory(1, "apple notes", content="nothing else"),
                note_factory(2, "apple banana smoothie", content="apple banana"),
            ]
        )

        assert await search_index.search_ids("apple banana", 10) == [2, 1]

    async def test_recreate_keeps_unrelated_files(self, tmp_path, note_factory):
        """Test recovering a corrupted index only replaces the index files."""
        index_dir = tmp_path / "search-index"
        index_dir.mkdir()
        (index_dir / INDEX_FILENAME).write_bytes(b"corrupted" * 200)
        neighbour = index_dir / "keep.txt"
        neighbour.write_text("untouched")

        index = FTSSearchIndex(index_dir=index_dir)
        await index.open()
        await index.upsert_note(note_factory(1, "Recovered"))

        assert neighbour.read_text() == "untouched"
        assert await index.search_ids("recovered", 10) == [1]
        await index.close()


class TestAnyTermExpression:
    """Tests for the OR rewrite of bare terms."""

    @pytest.mark.parametrize(
        "query, expected",
        [
            ("apple", "apple"),
            ("apple banana", "apple OR banana"),
            ("apple   banana  cherry", "apple OR banana OR cherry"),
            ('"foo bar" baz', '"foo bar" OR baz'),
            ("apple AND banana", "apple AND banana"),
            ("apple OR banana", "apple OR banana"),
            ("apple NOT banana", "apple NOT banana"),
            ("title:apple content:pie", "title:apple OR content:pie"),
            ("( apple banana )", "( apple OR banana )"),
            ("(apple banana) NOT cherry", "(apple OR banana) NOT cherry"),
            ("pre* fix", "pre* OR fix"),
        ],
    )
    def test_rewrite(self, query, expected):
        assert any_term_expression(query) == expected
