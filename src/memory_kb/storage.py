"""Entry persistence.

Each entry lives in ``<entries_dir>/<slug>.md``: YAML frontmatter for the
structured fields followed by the description as the body. These files are
the source of truth; the search index can always be rebuilt from them.
"""

import logging
import threading
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Protocol

import frontmatter
from pydantic import ValidationError

from .config import get_entries_dir
from .errors import DuplicateEntryError, EntryNotFoundError, ParseError
from .models import Entry

log = logging.getLogger(__name__)

ENTRY_EXT = ".md"


class Persister(Protocol):
    """Storage operations the indexing core relies on."""

    def read_entry(self, slug: str) -> Entry: ...

    def list_ids(self) -> list[str]: ...

    def write_entry(self, entry: Entry) -> None: ...

    def delete_entry(self, slug: str) -> None: ...

    def rename_entry(self, old_slug: str, new_name: str) -> Entry: ...

    def entry_exists(self, slug: str) -> bool: ...


def _as_text(value: Any) -> str:
    # YAML turns unquoted 2004 or 2004-01-02 into int/date
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _as_datetime(value: Any) -> Any:
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def entry_to_post(entry: Entry) -> frontmatter.Post:
    """Build the frontmatter document for an entry."""
    metadata: dict[str, Any] = {
        "name": entry.name,
        "type": entry.type.value,
        "tags": list(entry.tags),
    }
    for field in ("start", "end", "address", "latitude", "longitude"):
        value = getattr(entry, field)
        if value:
            metadata[field] = value
    if entry.custom:
        metadata["custom"] = dict(entry.custom)
    metadata["created"] = entry.created.isoformat()
    metadata["modified"] = entry.modified.isoformat()
    return frontmatter.Post(entry.description, **metadata)


def post_to_entry(post: frontmatter.Post, path: Path) -> Entry:
    """Validate a parsed frontmatter document as an entry.

    Raises:
        ParseError: If required fields are missing or invalid.
    """
    metadata = dict(post.metadata)
    if not metadata:
        raise ParseError(path, "Missing frontmatter (YAML block required at start of file)")

    fields: dict[str, Any] = {"description": post.content}
    for key in ("name", "type", "start", "end", "address", "latitude", "longitude"):
        if key in metadata:
            fields[key] = _as_text(metadata[key])
    if "tags" in metadata:
        tags = metadata["tags"] or []
        fields["tags"] = [_as_text(t) for t in tags] if isinstance(tags, list) else _as_text(tags).split(",")
    if metadata.get("custom"):
        fields["custom"] = {str(k): _as_text(v) for k, v in dict(metadata["custom"]).items()}
    for key in ("created", "modified"):
        if metadata.get(key) is not None:
            fields[key] = _as_datetime(metadata[key])

    try:
        return Entry.model_validate(fields)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"  - {loc}: {error['msg']}")
        raise ParseError(path, "Invalid frontmatter:\n" + "\n".join(errors)) from e


class FileStore:
    """Persister backed by one Markdown file per entry.

    Writes are staged in a small in-memory map and flushed immediately;
    the map and the flush share one lock.
    """

    def __init__(self, entries_dir: Path | None = None) -> None:
        self._entries_dir = entries_dir or get_entries_dir()
        self._entries_dir.mkdir(parents=True, exist_ok=True)
        self._pending: dict[str, Entry] = {}
        self._lock = threading.Lock()

    @property
    def entries_dir(self) -> Path:
        return self._entries_dir

    def path_for(self, slug: str) -> Path:
        return self._entries_dir / f"{slug}{ENTRY_EXT}"

    def entry_exists(self, slug: str) -> bool:
        with self._lock:
            if slug in self._pending:
                return True
        return self.path_for(slug).is_file()

    def read_entry(self, slug: str) -> Entry:
        """Read the entry stored under slug.

        Raises:
            EntryNotFoundError: If there is no file for slug.
            ParseError: If the file is not a valid entry.
        """
        with self._lock:
            pending = self._pending.get(slug)
        if pending is not None:
            return pending

        path = self.path_for(slug)
        if not path.is_file():
            raise EntryNotFoundError(slug)
        try:
            post = frontmatter.load(str(path))
        except Exception as e:
            raise ParseError(path, f"Failed to parse frontmatter: {e}") from e
        return post_to_entry(post, path)

    def list_ids(self) -> list[str]:
        """Return the slug of every stored entry, sorted."""
        slugs = {path.stem for path in self._entries_dir.glob(f"*{ENTRY_EXT}")}
        with self._lock:
            slugs.update(self._pending)
        return sorted(slugs)

    def write_entry(self, entry: Entry) -> None:
        """Save an entry, replacing any entry with the same slug."""
        with self._lock:
            self._pending[entry.slug] = entry
        self.flush()

    def flush(self) -> None:
        """Write all staged entries to disk.

        An entry that fails to write stays staged and the error propagates.
        """
        with self._lock:
            while self._pending:
                slug, entry = next(iter(self._pending.items()))
                text = frontmatter.dumps(entry_to_post(entry))
                self.path_for(slug).write_text(text + "\n", encoding="utf-8")
                del self._pending[slug]

    def delete_entry(self, slug: str) -> None:
        """Delete the entry stored under slug.

        Raises:
            EntryNotFoundError: If there is no such entry.
        """
        with self._lock:
            staged = self._pending.pop(slug, None)
        path = self.path_for(slug)
        if path.is_file():
            path.unlink()
        elif staged is None:
            raise EntryNotFoundError(slug)

    def rename_entry(self, old_slug: str, new_name: str) -> Entry:
        """Give an entry a new name, moving it to the matching slug.

        Raises:
            EntryNotFoundError: If old_slug does not exist.
            DuplicateEntryError: If another entry already has the new slug.
            ValidationError: If new_name is not a valid entry name.
        """
        entry = self.read_entry(old_slug)
        renamed = Entry.model_validate({**entry.model_dump(), "name": new_name})
        if renamed.slug != old_slug and self.entry_exists(renamed.slug):
            raise DuplicateEntryError(new_name, renamed.slug)

        self.write_entry(renamed)
        if renamed.slug != old_slug:
            self.delete_entry(old_slug)
        log.debug("Renamed %s to %s", old_slug, renamed.slug)
        return renamed
