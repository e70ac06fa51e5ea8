"""Tests for the reverse-link pass and the broken-link report."""

import pytest
from conftest import make_entry

from memory_kb.linkgraph import broken_links, repopulate_links


@pytest.fixture
def linked_index(store, entry_index):
    """A -> B, B -> B (self link), B -> C."""
    for entry in (
        make_entry("A", description="See [B]."),
        make_entry("B", description="See [B] and [C]."),
        make_entry("C", description="Nothing here."),
    ):
        store.write_entry(entry)
        entry_index.put(entry)
    return entry_index


class TestRepopulate:
    def test_backward_links(self, store, linked_index):
        backward = repopulate_links(linked_index, store)

        assert backward == {"b": ["a", "b"], "c": ["b"]}
        assert linked_index.linked_from("a") == []
        assert linked_index.linked_from("b") == ["a", "b"]
        assert linked_index.linked_from("c") == ["b"]

    def test_forward_links_come_from_storage(self, store, linked_index):
        store.write_entry(make_entry("C", description="Back to [A]."))
        repopulate_links(linked_index, store)

        assert linked_index.links("c") == ["a"]
        assert linked_index.linked_from("a") == ["c"]

    def test_removed_links_are_cleared(self, store, linked_index):
        repopulate_links(linked_index, store)
        store.write_entry(make_entry("A", description="No links now."))
        repopulate_links(linked_index, store)

        assert linked_index.linked_from("b") == ["b"]

    def test_without_store_uses_indexed_links(self, linked_index):
        backward = repopulate_links(linked_index)
        assert backward == {"b": ["a", "b"], "c": ["b"]}

    def test_unreadable_entry_keeps_indexed_links(self, store, linked_index, caplog):
        store.path_for("a").write_text("not an entry\n")
        repopulate_links(linked_index, store)

        assert linked_index.linked_from("b") == ["a", "b"]
        assert "Keeping indexed links for a" in caplog.text

    def test_repeated_pass_is_stable(self, store, linked_index):
        first = repopulate_links(linked_index, store)
        assert repopulate_links(linked_index, store) == first


class TestBrokenLinks:
    def test_no_broken_links(self, linked_index):
        assert broken_links(linked_index) == {}

    def test_reports_missing_targets_by_name(self, linked_index):
        linked_index.put(make_entry("D", description="[Nowhere], [Nowhere] again, [Lost] and [C]"))
        assert broken_links(linked_index) == {"D": ["lost", "nowhere"]}

    def test_deleting_a_target_breaks_links(self, linked_index):
        linked_index.delete("c")
        assert broken_links(linked_index) == {"B": ["c"]}
