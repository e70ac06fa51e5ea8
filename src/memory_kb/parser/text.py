"""Name normalization and text helpers."""

import re
import unicodedata

from ..config import MAX_NAME_LENGTH, UNRESOLVED_MARKER

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE_RUN = re.compile(r"[ \t\r\n]+")


def slugify(name: str) -> str:
    """Convert an entry name to its identifier (lowercase, hyphens, alphanumeric only)."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALNUM.sub("-", ascii_name.lower())
    return slug.strip("-")


def collapse_whitespace(text: str) -> str:
    """Replace line breaks, tabs and runs of spaces with single spaces."""
    return _WHITESPACE_RUN.sub(" ", text)


def truncate_at_whitespace(text: str, max_len: int) -> str:
    """Shorten text to at most max_len characters, breaking between words.

    Args:
        text: Text to shorten. Whitespace runs are collapsed first.
        max_len: Maximum length of the result.

    Returns:
        The collapsed text if it fits, otherwise its longest whole-word prefix.
    """
    text = collapse_whitespace(text)
    if len(text) <= max_len:
        return text

    kept: list[str] = []
    length = 0
    for word in text.split(" "):
        # +1 for the joining space
        length += len(word) + (1 if kept else 0)
        if length > max_len:
            break
        kept.append(word)
    if not kept:
        # a single word longer than max_len
        return text[:max_len]
    return " ".join(kept)


def validate_entry_name(name: str) -> str:
    """Check an entry name, returning it unchanged.

    Raises:
        ValueError: Describing the first rule the name breaks.
    """
    if not name:
        raise ValueError("name cannot be an empty string")
    if name.startswith(" "):
        raise ValueError("name cannot start with a space")
    if name.endswith(" "):
        raise ValueError("name cannot end with a space")
    if "\n" in name or "\r" in name:
        raise ValueError("name cannot contain line breaks")
    if "\t" in name:
        raise ValueError("name cannot contain tab characters")
    if any(unicodedata.category(ch) == "Cc" for ch in name):
        raise ValueError("name cannot contain control characters")
    if "  " in name:
        raise ValueError("name cannot contain more than 1 consecutive space")
    if name.startswith(UNRESOLVED_MARKER):
        raise ValueError(f"name cannot start with a {UNRESOLVED_MARKER} character")
    if "[" in name or "]" in name:
        raise ValueError("name cannot contain [ or ]")
    if len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"name length cannot exceed {MAX_NAME_LENGTH}")
    if not slugify(name):
        raise ValueError("name must contain at least one letter or digit")
    return name
