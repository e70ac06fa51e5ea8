"""Tests for [Entry Name] link extraction and rendering."""

import logging

import pytest

from memory_kb.parser.links import LinkScanner, extract_links, render_links


def exists_in(*slugs):
    known = set(slugs)
    return lambda slug: slug in known


class TestExtract:
    def test_single_link(self):
        assert extract_links("Met [Ada Lovelace] today.") == ["ada-lovelace"]

    def test_repeated_links_coalesce(self):
        assert extract_links("[Exists] [Exists]") == ["exists"]

    def test_order_of_first_appearance(self):
        assert extract_links("[B] then [A] then [b]") == ["b", "a"]

    def test_external_markdown_link_ignored(self):
        assert extract_links("[Exists](http://x)") == []

    def test_link_followed_by_space_then_paren_counts(self):
        assert extract_links("[Exists] (aside)") == ["exists"]

    def test_decorative_brackets_ignored(self):
        assert extract_links("[~Not Exists]") == []

    def test_unresolved_marker_stripped(self):
        assert extract_links("[?Not Exists]") == ["not-exists"]

    def test_link_across_line_break(self):
        assert extract_links("[Ada\nLovelace]") == ["ada-lovelace"]

    @pytest.mark.parametrize("text", ["", "no links", "[]", "[?]", "[_x]", "[ spaced]", "[!!]"])
    def test_no_links(self, text):
        assert extract_links(text) == []


class TestRender:
    def test_missing_target_gets_marker(self):
        rendered = render_links("[Not Exists]", exists_in())
        assert rendered == "[?Not Exists]"
        assert extract_links(rendered) == ["not-exists"]

    def test_marker_removed_once_target_exists(self):
        assert render_links("See [?Ada].", exists_in("ada")) == "See [Ada]."

    def test_existing_target_unchanged(self):
        assert render_links("See [Ada].", exists_in("ada")) == "See [Ada]."

    def test_tilde_is_kept(self):
        assert render_links("[~Aside] [Ada]", exists_in()) == "[~Aside] [?Ada]"

    def test_external_link_untouched(self):
        text = "[Docs](https://example.com) and [Ada]"
        assert render_links(text, exists_in("ada")) == text

    def test_multiple_markers_collapse(self):
        assert render_links("[??Ada]", exists_in("ada")) == "[Ada]"

    def test_resolved_reference_stays_a_link(self):
        rendered = render_links("See [?-Ada] and [? Bob].", exists_in("ada", "bob"))
        assert rendered == "See [Ada] and [Bob]."
        assert extract_links(rendered) == ["ada", "bob"]

    @pytest.mark.parametrize("known", [(), ("ada",), ("ada", "bob"), ("bob", "carol")])
    def test_render_is_idempotent(self, known):
        text = "See [Ada], [?Bob] and [Carol](http://c) or [~Dan].\n[Ada] again."
        exists = exists_in(*known)
        once = render_links(text, exists)
        assert render_links(once, exists) == once


class TestLinkScanner:
    def test_scan_reports_positions(self):
        text = "x [?Ada] y"
        (match,) = LinkScanner().scan(text)
        assert text[match.start : match.end] == "[?Ada]"
        assert match.raw == "?Ada"
        assert match.slug == "ada"
        assert match.unresolved

    def test_bad_pattern_degrades(self, caplog):
        with caplog.at_level(logging.WARNING, logger="memory_kb"):
            scanner = LinkScanner("[")
        assert "Failed to compile link pattern" in caplog.text
        assert scanner.extract("[Ada]") == []
        assert scanner.render("[Ada]", exists_in()) == "[Ada]"
