# tests/test_query_engine.py
"""Tests for search and tag filtering."""
import pytest

from marknotes.models.schema import Note
from marknotes.services.query_engine import (
    FilterState,
    filter_notes,
    matches_query,
    matches_tags,
)


@pytest.fixture
def notes(seed_store):
    return seed_store.all()


class TestFilterNotes:
    def test_no_filters_returns_everything_in_order(self, notes):
        result = filter_notes(notes, "", set())
        assert [n.id for n in result] == ["1", "2", "3"]

    def test_markdown_query_matches_only_syntax_guide(self, notes):
        result = filter_notes(notes, "markdown", set())
        assert [n.title for n in result] == ["Markdown Syntax Guide"]

    def test_query_is_case_insensitive(self, notes):
        assert [n.id for n in filter_notes(notes, "PROJECT IDEAS", set())] == ["3"]

    def test_query_matches_content(self, notes):
        assert [n.id for n in filter_notes(notes, "habit tracker", set())] == ["3"]

    def test_tag_filter(self, notes):
        result = filter_notes(notes, "", {"todo"})
        assert [n.title for n in result] == ["Project Ideas"]

    def test_tag_filter_is_or(self, notes):
        result = filter_notes(notes, "", {"todo", "markdown"})
        assert [n.id for n in result] == ["2", "3"]

    def test_query_and_tags_combine(self, notes):
        assert [n.id for n in filter_notes(notes, "welcome", {"tutorial"})] == ["1"]
        assert filter_notes(notes, "welcome", {"todo"}) == []

    def test_unknown_tag_matches_nothing(self, notes):
        assert filter_notes(notes, "", {"nope"}) == []

    def test_required_tags_are_normalized(self, notes):
        assert [n.id for n in filter_notes(notes, "", {"TODO"})] == ["3"]
        assert [n.id for n in filter_notes(notes, "", {" Markdown "})] == ["2"]

    def test_result_is_subset_preserving_order(self, notes):
        result = filter_notes(notes, "e", {"tutorial", "ideas"})
        ids = [n.id for n in notes]
        positions = [ids.index(n.id) for n in result]
        assert positions == sorted(positions)


class TestPredicates:
    def test_empty_query_matches(self):
        assert matches_query(Note(), "")

    def test_whitespace_query_is_literal(self):
        assert not matches_query(Note(title="one", content="two"), "  ")

    def test_matches_tags_without_requirements(self):
        assert matches_tags(Note(), [])


class TestFilterState:
    def test_defaults_inactive(self):
        state = FilterState()
        assert not state.is_active
        assert state.required_tags == set()

    def test_toggle_tag(self):
        state = FilterState()
        assert state.toggle_tag("Todo") is True
        assert state.required_tags == {"todo"}
        assert state.toggle_tag("todo") is False
        assert state.required_tags == set()

    def test_toggle_blank_tag_ignored(self):
        state = FilterState()
        assert state.toggle_tag("  ") is False
        assert not state.is_active

    def test_apply(self, notes):
        state = FilterState()
        state.set_query("markdown")
        assert state.is_active
        assert [n.id for n in state.apply(notes)] == ["2"]

    def test_clear(self, notes):
        state = FilterState(query="x", required_tags=["todo"])
        state.clear()
        assert not state.is_active
        assert len(state.apply(notes)) == 3
