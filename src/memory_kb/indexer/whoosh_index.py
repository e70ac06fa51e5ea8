"""Whoosh-based entry index.

The index is a disposable projection of the entry files. If it is missing
or cannot be opened it is rebuilt from storage rather than repaired.
"""

import logging
import pickle
import shutil
import struct
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

from pydantic import ValidationError
from whoosh import index
from whoosh.analysis import StemmingAnalyzer
from whoosh.fields import DATETIME, ID, KEYWORD, NUMERIC, STORED, TEXT, Schema
from whoosh.query import Term

from ..config import EXCERPT_LENGTH, get_index_dir
from ..errors import KBError, StorageError
from ..models import Entry, EntryResults, IndexedEntry, RebuildReport, SearchFilter, SortOrder
from ..parser.dates import range_bounds
from ..storage import Persister
from .projection import from_document, from_indexed, to_document, to_indexed
from .query import build_search_query, build_timeline_query

log = logging.getLogger(__name__)

_WHOOSH_ERRORS = (OSError, index.IndexError, index.LockError)
# A damaged TOC or segment file can fail while unpickling or unpacking
_OPEN_ERRORS = _WHOOSH_ERRORS + (EOFError, ValueError, struct.error, pickle.UnpicklingError)


class IndexState(Enum):
    ABSENT = "absent"
    BUILDING = "building"
    READY = "ready"


def entry_schema() -> Schema:
    """Field layout of an indexed entry."""
    return Schema(
        slug=ID(stored=True, unique=True),
        name=TEXT(stored=True, analyzer=StemmingAnalyzer()),
        name_sort=ID(sortable=True),
        excerpt=TEXT(stored=True, analyzer=StemmingAnalyzer()),
        tags=KEYWORD(stored=True, commas=True, lowercase=True, scorable=True),
        links=KEYWORD(stored=True, commas=True),
        linked_from=KEYWORD(stored=True, commas=True),
        entry_type=ID(stored=True),
        start=DATETIME(stored=True),
        start_precision=NUMERIC(stored=True),
        end=DATETIME(stored=True),
        end_precision=NUMERIC(stored=True),
        span_end=DATETIME,
        address=TEXT(stored=True),
        latitude=STORED,
        longitude=STORED,
        custom=STORED,
        custom_text=TEXT(analyzer=StemmingAnalyzer()),
        created=DATETIME(stored=True),
        modified=DATETIME(stored=True, sortable=True),
    )


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except _WHOOSH_ERRORS as e:
        raise StorageError(f"Search index {action} failed: {e}") from e


class EntryIndex:
    """Persistent inverted index of entries keyed by slug."""

    def __init__(
        self,
        index_dir: Path | None = None,
        store: Persister | None = None,
        excerpt_length: int = EXCERPT_LENGTH,
    ):
        """Initialize the entry index.

        Args:
            index_dir: Directory for index storage. Defaults to MEMORY_KB_HOME/search/.
            store: Entry storage used to rebuild the index.
            excerpt_length: Description characters kept per entry.
        """
        self._index_dir = index_dir or get_index_dir()
        self._store = store
        self._excerpt_length = excerpt_length
        self._index: index.Index | None = None
        self._schema = entry_schema()
        self.state = IndexState.ABSENT

    @property
    def schema(self) -> Schema:
        return self._schema

    def open(self) -> "EntryIndex":
        """Open the index on disk, rebuilding it when absent or unreadable."""
        if self._index is not None:
            return self

        if self._index_dir.exists():
            try:
                # exists_in opens the TOC as well
                if index.exists_in(str(self._index_dir)):
                    self._index = index.open_dir(str(self._index_dir))
            except _OPEN_ERRORS as e:
                log.warning("Could not open search index at %s, rebuilding: %s", self._index_dir, e)
                self._index = None
            if self._index is not None:
                self.state = IndexState.READY
                return self

        self.rebuild()
        return self

    def close(self) -> None:
        if self._index is not None:
            self._index.close()
            self._index = None
        self.state = IndexState.ABSENT

    def _ensure_index(self) -> index.Index:
        """Ensure the index is open and return it."""
        if self._index is None:
            self.open()
        if self._index is None:
            raise StorageError(f"Search index at {self._index_dir} is not open")
        return self._index

    # ─────────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────────

    def put(self, entry: Entry, linked_from: Iterable[str] | None = None) -> IndexedEntry:
        """Add or replace an entry in the index.

        Args:
            entry: The entry to index.
            linked_from: Slugs linking to this entry. When None the set stored
                by the last link pass is kept.

        Returns:
            The indexed form that was written.
        """
        if linked_from is None:
            existing = self.lookup(entry.slug)
            linked_from = existing.linked_from if existing else []
        indexed = self.project(entry, linked_from)
        self.put_indexed([indexed])
        return indexed

    def project(self, entry: Entry, linked_from: Iterable[str] = ()) -> IndexedEntry:
        """Project an entry using this index's excerpt length."""
        return to_indexed(entry, linked_from, self._excerpt_length)

    def put_indexed(self, entries: Iterable[IndexedEntry]) -> None:
        """Write already projected entries in a single commit."""
        ix = self._ensure_index()
        with _storage_errors("write"):
            with ix.writer() as writer:
                for indexed in entries:
                    writer.update_document(**to_document(indexed))

    def delete(self, slug: str) -> None:
        """Remove an entry from the index; unknown slugs are ignored."""
        ix = self._ensure_index()
        with _storage_errors("delete"):
            with ix.writer() as writer:
                writer.delete_by_term("slug", slug)

    def rebuild(self) -> RebuildReport:
        """Replace the index with a fresh one built from every stored entry.

        Entries that cannot be read are skipped and reported, so one bad file
        does not block recovery.

        Raises:
            StorageError: If the new index cannot be created or written.
        """
        self.close()
        self.state = IndexState.BUILDING

        try:
            if self._index_dir.exists():
                shutil.rmtree(self._index_dir)
            self._index_dir.mkdir(parents=True, exist_ok=True)
            self._index = index.create_in(str(self._index_dir), self._schema)
        except _WHOOSH_ERRORS as e:
            self.state = IndexState.ABSENT
            raise StorageError(f"Search index create failed: {e}") from e

        slugs = self._store.list_ids() if self._store is not None else []
        log.info("Indexing %d entries for search...", len(slugs))

        failed: list[str] = []
        count = 0
        with _storage_errors("rebuild"):
            with self._index.writer() as writer:
                for slug in slugs:
                    try:
                        entry = self._store.read_entry(slug)  # type: ignore[union-attr]
                    except (KBError, OSError, ValidationError) as e:
                        log.warning("Error reading %s: %s", slug, e)
                        failed.append(slug)
                        continue
                    indexed = self.project(entry)
                    writer.update_document(**to_document(indexed))
                    count += 1

        self.state = IndexState.READY
        if failed:
            log.warning("Indexed %d out of %d entries; %d could not be read.", count, len(slugs), len(failed))
        else:
            log.info("Indexed %d out of %d entries.", count, len(slugs))
        return RebuildReport(indexed=count, total=len(slugs), failed=failed)

    # ─────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────

    def lookup(self, slug: str) -> IndexedEntry | None:
        """Fetch the indexed form of one entry, or None if it is not indexed."""
        ix = self._ensure_index()
        with _storage_errors("lookup"):
            with ix.searcher() as searcher:
                fields = searcher.document(slug=slug)
        if fields is None:
            return None
        return from_document(fields)

    def exists(self, slug: str) -> bool:
        """Existence predicate used when rendering links."""
        return self.lookup(slug) is not None

    def stub(self, slug: str) -> Entry | None:
        """Display projection of an entry (excerpt instead of full description)."""
        indexed = self.lookup(slug)
        if indexed is None:
            return None
        return from_indexed(indexed)

    def all_ids(self) -> list[str]:
        """Return every indexed slug, sorted."""
        return [indexed.slug for indexed in self.all_indexed()]

    def all_indexed(self) -> list[IndexedEntry]:
        """Return every indexed entry, sorted by slug."""
        ix = self._ensure_index()
        with _storage_errors("scan"):
            with ix.searcher() as searcher:
                entries = [from_document(fields) for fields in searcher.all_stored_fields()]
        return sorted(entries, key=lambda e: e.slug)

    def doc_count(self) -> int:
        """Return the number of entries in the index."""
        ix = self._ensure_index()
        return ix.doc_count()

    def search(
        self,
        search: SearchFilter | None = None,
        sort: SortOrder = SortOrder.SCORE,
        page_no: int = 1,
        page_size: int = 10,
    ) -> EntryResults:
        """Return one page of entries matching the filter.

        Args:
            search: Type, tag and keyword criteria. None matches everything.
            sort: Result ordering.
            page_no: 1-based page number.
            page_size: Entries per page.

        Returns:
            The page, with the total number of matches.
        """
        if page_no < 1:
            raise ValueError(f"page_no must be at least 1, got {page_no}")
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")

        search = search or SearchFilter()
        query = build_search_query(self._schema, search)
        offset = (page_no - 1) * page_size

        sort_kwargs: dict = {}
        if sort == SortOrder.NAME:
            sort_kwargs = {"sortedby": "name_sort"}
        elif sort == SortOrder.RECENT:
            sort_kwargs = {"sortedby": "modified", "reverse": True}

        ix = self._ensure_index()
        with _storage_errors("search"):
            with ix.searcher() as searcher:
                results = searcher.search(query, limit=offset + page_size, **sort_kwargs)
                total = len(results)
                page = [from_document(hit.fields()) for hit in results[offset : offset + page_size]]

        return EntryResults(
            entries=[from_indexed(indexed) for indexed in page],
            filter=search,
            sort=sort,
            total=total,
            page_no=page_no,
            page_size=page_size,
        )

    def refresh(self, stale: EntryResults) -> EntryResults:
        """Re-run the search that produced stale to pick up any changes."""
        return self.search(stale.filter, stale.sort, stale.page_no, stale.page_size)

    def timeline(self, start: str = "", end: str = "") -> list[Entry]:
        """Return dated entries within a range, earliest start first.

        Args:
            start: Earliest start date (flexible date); "" for no lower bound.
            end: Latest end date (flexible date); "" for no upper bound. A
                partial date covers its whole year or month.

        Raises:
            InvalidDateError: If a bound is not a flexible date.
        """
        lower, upper = range_bounds(start, end)
        query = build_timeline_query(lower, upper)
        ix = self._ensure_index()
        with _storage_errors("search"):
            with ix.searcher() as searcher:
                results = searcher.search(query, limit=None)
                page = [from_document(hit.fields()) for hit in results]
        page.sort(key=lambda indexed: (indexed.start, indexed.name.lower()))
        return [from_indexed(indexed) for indexed in page]

    def links(self, slug: str) -> list[str]:
        """Slugs the entry links to."""
        indexed = self.lookup(slug)
        return list(indexed.links) if indexed else []

    def linked_from(self, slug: str) -> list[str]:
        """Slugs linking to the entry, as of the last link pass."""
        indexed = self.lookup(slug)
        return list(indexed.linked_from) if indexed else []

    def reverse_links(self, slug: str) -> list[str]:
        """Slugs of entries whose description currently links to slug."""
        ix = self._ensure_index()
        with _storage_errors("search"):
            with ix.searcher() as searcher:
                results = searcher.search(Term("links", slug), limit=None)
                slugs = [hit["slug"] for hit in results]
        return sorted(slugs)

    def tags(self) -> dict[str, list[str]]:
        """Map each tag to the sorted names of the entries carrying it."""
        tags: dict[str, set[str]] = {}
        for indexed in self.all_indexed():
            for tag in indexed.tags:
                tags.setdefault(tag, set()).add(indexed.name)
        return {tag: sorted(names) for tag, names in sorted(tags.items())}
