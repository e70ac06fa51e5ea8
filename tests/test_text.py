"""Tests for slugs, whitespace helpers and entry name validation."""

import pytest

from memory_kb.parser.text import (
    collapse_whitespace,
    slugify,
    truncate_at_whitespace,
    validate_entry_name,
)


class TestSlugify:
    """Names map to lowercase hyphenated identifiers."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Ada Lovelace", "ada-lovelace"),
            ("  --Hello, World!-- ", "hello-world"),
            ("Café del Mar", "cafe-del-mar"),
            ("R2-D2", "r2-d2"),
            ("under_score", "under-score"),
            ("ALL CAPS", "all-caps"),
            ("!!!", ""),
        ],
    )
    def test_slugify(self, name, expected):
        assert slugify(name) == expected

    def test_similar_names_share_a_slug(self):
        assert slugify("Ada  Lovelace") == slugify("ada-lovelace") == slugify("Ada Lovelace!")


class TestWhitespace:
    def test_collapse_whitespace(self):
        assert collapse_whitespace("a  b\n\tc\r\n d") == "a b c d"

    def test_short_text_is_unchanged(self):
        assert truncate_at_whitespace("one two", 20) == "one two"

    def test_truncates_between_words(self):
        assert truncate_at_whitespace("one two three", 7) == "one two"
        assert truncate_at_whitespace("one two three", 10) == "one two"

    def test_long_single_word_is_cut(self):
        assert truncate_at_whitespace("supercalifragilistic", 5) == "super"

    def test_collapses_before_measuring(self):
        assert truncate_at_whitespace("a  b\n\nc", 5) == "a b c"


class TestValidateEntryName:
    """Entry names must be usable as link text and file names."""

    @pytest.mark.parametrize("name", ["Ada Lovelace", "R2-D2", "x", "a" * 50, "Café"])
    def test_valid_names(self, name):
        assert validate_entry_name(name) == name

    @pytest.mark.parametrize(
        "name,message",
        [
            ("", "empty"),
            (" Ada", "start with a space"),
            ("Ada ", "end with a space"),
            ("Ada\nLovelace", "line breaks"),
            ("Ada\tLovelace", "tab"),
            ("Ada\x00", "control"),
            ("Ada  Lovelace", "consecutive space"),
            ("?Ada", r"start with a \?"),
            ("Ada [L]", r"\[ or \]"),
            ("a" * 51, "cannot exceed 50"),
            ("!!!", "letter or digit"),
        ],
    )
    def test_invalid_names(self, name, message):
        with pytest.raises(ValueError, match=message):
            validate_entry_name(name)
