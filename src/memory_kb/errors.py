"""Exception types raised by the indexing and link-graph core."""

from pathlib import Path


class KBError(Exception):
    """Base class for knowledge base errors."""


class EntryNotFoundError(KBError, KeyError):
    """Raised when a slug has no entry in storage."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(slug)

    def __str__(self) -> str:
        return f"Entry not found: {self.slug}"


class DuplicateEntryError(KBError):
    """Raised when a name resolves to a slug that is already taken."""

    def __init__(self, name: str, slug: str) -> None:
        self.name = name
        self.slug = slug
        super().__init__(f"An entry named {name!r} (or very similar) already exists: {slug}")


class StorageError(KBError):
    """Raised when the search index cannot be opened, created, written or queried."""


class InvalidDateError(KBError, ValueError):
    """Raised for a flexible date that is not YYYY, YYYY-MM or YYYY-MM-DD."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid date {value!r}: expected YYYY, YYYY-MM or YYYY-MM-DD")


class ParseError(KBError):
    """Raised when an entry file cannot be parsed."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")
