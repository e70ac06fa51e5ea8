"""Link graph maintenance across all entries.

Forward links come from each entry's own description. Backward links depend
on every other entry, so they are recomputed from scratch in one full pass
instead of being patched as individual entries change.
"""

import logging

from pydantic import ValidationError

from .errors import KBError
from .indexer.whoosh_index import EntryIndex
from .models import IndexedEntry
from .storage import Persister

log = logging.getLogger(__name__)


def repopulate_links(entry_index: EntryIndex, store: Persister | None = None) -> dict[str, list[str]]:
    """Recompute forward and backward links for every indexed entry.

    Args:
        entry_index: Index to read from and write back to.
        store: Entry storage supplying full descriptions. Without it, or for
            entries it cannot read, the forward links already indexed are kept.

    Returns:
        Map of target slug to the sorted slugs linking to it.
    """
    refreshed: list[IndexedEntry] = []
    backward: dict[str, set[str]] = {}

    for indexed in entry_index.all_indexed():
        if store is not None:
            try:
                entry = store.read_entry(indexed.slug)
            except (KBError, OSError, ValidationError) as e:
                log.warning("Keeping indexed links for %s: %s", indexed.slug, e)
            else:
                indexed = entry_index.project(entry)

        for target in indexed.links:
            backward.setdefault(target, set()).add(indexed.slug)
        refreshed.append(indexed)

    linked_from = {target: sorted(sources) for target, sources in backward.items()}
    for indexed in refreshed:
        indexed.linked_from = linked_from.get(indexed.slug, [])

    entry_index.put_indexed(refreshed)
    log.info("Updated links for %d entries", len(refreshed))
    return linked_from


def broken_links(entry_index: EntryIndex) -> dict[str, list[str]]:
    """Find links pointing at entries that do not exist.

    Returns:
        Map of entry name to the sorted, unique slugs it links to that have no
        entry. Entries without broken links are left out.
    """
    entries = entry_index.all_indexed()
    known = {indexed.slug for indexed in entries}

    report: dict[str, list[str]] = {}
    for indexed in entries:
        missing = sorted({slug for slug in indexed.links if slug not in known})
        if missing:
            report[indexed.name] = missing
    return report
