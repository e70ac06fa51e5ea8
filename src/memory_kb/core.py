"""Knowledge base service.

Wires entry storage to the search index. Build one instance at startup with
``KnowledgeBase.open()`` and pass it to whatever needs it.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path

from .config import Settings, get_home, load_settings
from .errors import DuplicateEntryError, EntryNotFoundError
from .indexer.whoosh_index import EntryIndex
from .linkgraph import broken_links, repopulate_links
from .models import Entry, EntryResults, RebuildReport, SearchFilter, SortOrder
from .pager import ResultPager
from .parser.links import render_links
from .parser.text import slugify
from .storage import FileStore, Persister

log = logging.getLogger(__name__)


class KnowledgeBase:
    """Entry storage plus the search index over it."""

    def __init__(self, store: Persister, entry_index: EntryIndex, settings: Settings | None = None) -> None:
        self.store = store
        self.index = entry_index
        self.settings = settings or Settings()

    @classmethod
    def open(cls, home: Path | None = None) -> "KnowledgeBase":
        """Open the knowledge base under home (default: configured home).

        The search index is opened, or built from the entry files if absent.
        """
        home = home or get_home()
        settings = load_settings(home / "settings.yaml")
        store = FileStore(home / "entries")
        entry_index = EntryIndex(home / "search", store, settings.excerpt_length).open()
        return cls(store, entry_index, settings)

    # ─────────────────────────────────────────────────────────────────────
    # Entries
    # ─────────────────────────────────────────────────────────────────────

    def exists(self, slug: str) -> bool:
        return self.index.exists(slug)

    def render(self, entry: Entry) -> str:
        """Return the entry's description with links marked against current entries."""
        return render_links(entry.description, lambda slug: slug == entry.slug or self.exists(slug))

    def get_entry(self, slug: str) -> Entry:
        """Read the full entry from storage.

        Raises:
            EntryNotFoundError: If no entry has this slug.
        """
        return self.store.read_entry(slug)

    def add_entry(self, entry: Entry) -> Entry:
        """Store and index a new entry.

        Raises:
            DuplicateEntryError: If an entry with the same slug already exists.
        """
        if self.store.entry_exists(entry.slug):
            raise DuplicateEntryError(entry.name, entry.slug)
        return self.put_entry(entry)

    def put_entry(self, entry: Entry) -> Entry:
        """Add or replace an entry, keeping the original creation time."""
        update: dict = {"modified": datetime.now(UTC)}
        if self.store.entry_exists(entry.slug):
            update["created"] = self.store.read_entry(entry.slug).created
        entry = entry.model_copy(update=update)
        entry = entry.model_copy(update={"description": self.render(entry)})

        self.store.write_entry(entry)
        self.index.put(entry)
        return entry

    def delete_entry(self, slug: str) -> None:
        """Remove an entry from storage and the index.

        Raises:
            EntryNotFoundError: If no entry has this slug.
        """
        if not self.store.entry_exists(slug):
            raise EntryNotFoundError(slug)
        self.store.delete_entry(slug)
        self.index.delete(slug)
        log.info("Deleted %s", slug)

    def rename_entry(self, old_name: str, new_name: str) -> Entry:
        """Give an entry a new name, which also gives it a new slug.

        Raises:
            EntryNotFoundError: If old_name does not name an entry.
            DuplicateEntryError: If new_name resolves to another entry's slug.
        """
        old_slug = slugify(old_name)
        new_slug = slugify(new_name)
        if new_slug != old_slug and self.store.entry_exists(new_slug):
            raise DuplicateEntryError(new_name, new_slug)

        renamed = self.store.rename_entry(old_slug, new_name)
        self.index.delete(old_slug)
        self.index.put(renamed)
        log.info("Renamed %s to %s", old_slug, renamed.slug)
        return renamed

    def name_from_slug(self, slug: str) -> str | None:
        stub = self.index.stub(slug)
        return stub.name if stub else None

    # ─────────────────────────────────────────────────────────────────────
    # Index
    # ─────────────────────────────────────────────────────────────────────

    def index_entry(self, entry: Entry) -> None:
        self.index.put(entry)

    def remove_from_index(self, slug: str) -> None:
        self.index.delete(slug)

    def rebuild(self) -> RebuildReport:
        """Rebuild the index from storage, then recompute links."""
        report = self.index.rebuild()
        self.repopulate_links()
        return report

    def stub(self, slug: str) -> Entry | None:
        return self.index.stub(slug)

    def search(
        self,
        search: SearchFilter | None = None,
        sort: SortOrder = SortOrder.SCORE,
        page_no: int = 1,
        page_size: int | None = None,
    ) -> EntryResults:
        return self.index.search(search, sort, page_no, page_size or self.settings.page_size)

    def pager(
        self,
        search: SearchFilter | None = None,
        sort: SortOrder = SortOrder.SCORE,
        page_size: int | None = None,
    ) -> ResultPager:
        return ResultPager(self.index, search, sort, page_size or self.settings.page_size)

    def timeline(self, start: str = "", end: str = "") -> list[Entry]:
        return self.index.timeline(start, end)

    def links(self, slug: str) -> list[str]:
        return self.index.links(slug)

    def reverse_links(self, slug: str) -> list[str]:
        return self.index.reverse_links(slug)

    def repopulate_links(self) -> dict[str, list[str]]:
        return repopulate_links(self.index, self.store)

    def broken_links(self) -> dict[str, list[str]]:
        return broken_links(self.index)

    def tags(self) -> dict[str, list[str]]:
        return self.index.tags()
