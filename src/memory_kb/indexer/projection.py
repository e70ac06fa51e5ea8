"""Conversion between entries, indexed entries and Whoosh documents.

An IndexedEntry is derived entirely from an Entry plus the current link
state, so it can be thrown away and rebuilt at any time. The conversion
back to an Entry is lossy: only the description excerpt is indexed.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from ..config import EXCERPT_LENGTH
from ..errors import InvalidDateError
from ..models import Entry, EntryType, IndexedEntry
from ..parser.dates import Precision, format_flex_date, parse_flex_date, period_end
from ..parser.links import extract_links
from ..parser.text import collapse_whitespace, truncate_at_whitespace

log = logging.getLogger(__name__)


def _parse_entry_date(entry: Entry, field: str) -> tuple[datetime | None, Precision | None]:
    value = getattr(entry, field)
    try:
        return parse_flex_date(value)
    except InvalidDateError as e:
        log.warning("Indexing %s without %s: %s", entry.slug, field, e)
        return None, None


def to_indexed(
    entry: Entry,
    linked_from: Iterable[str] = (),
    excerpt_length: int = EXCERPT_LENGTH,
) -> IndexedEntry:
    """Project an entry into its search index representation.

    Args:
        entry: The entry to project.
        linked_from: Slugs of entries linking to this one.
        excerpt_length: Maximum length of the description excerpt.
    """
    start, start_precision = _parse_entry_date(entry, "start")
    end, end_precision = _parse_entry_date(entry, "end")
    return IndexedEntry(
        slug=entry.slug,
        name=entry.name,
        excerpt=truncate_at_whitespace(entry.description, excerpt_length),
        tags=list(entry.tags),
        links=extract_links(entry.description),
        linked_from=list(linked_from),
        entry_type=entry.type,
        start=start,
        start_precision=start_precision,
        end=end,
        end_precision=end_precision,
        address=entry.address,
        latitude=entry.latitude,
        longitude=entry.longitude,
        custom=dict(entry.custom),
        created=entry.created,
        modified=entry.modified,
    )


def from_indexed(indexed: IndexedEntry) -> Entry:
    """Rebuild a display entry (a stub) from its indexed form."""
    fields: dict[str, Any] = {
        "name": indexed.name,
        "description": indexed.excerpt,
        "tags": indexed.tags,
        "type": indexed.entry_type,
        "start": format_flex_date(indexed.start, indexed.start_precision),
        "end": format_flex_date(indexed.end, indexed.end_precision),
        "address": indexed.address,
        "latitude": indexed.latitude,
        "longitude": indexed.longitude,
        "custom": indexed.custom,
    }
    if indexed.created is not None:
        fields["created"] = indexed.created
    if indexed.modified is not None:
        fields["modified"] = indexed.modified
    return Entry(**fields)


# ─────────────────────────────────────────────────────────────────────────────
# Whoosh documents
# ─────────────────────────────────────────────────────────────────────────────


def _to_naive_utc(value: datetime | None) -> datetime | None:
    # Whoosh DATETIME fields compare against naive epoch datetimes
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _to_aware_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def to_document(indexed: IndexedEntry) -> dict[str, Any]:
    """Flatten an indexed entry into Whoosh field values.

    Fields whose value is None are left out of the document.
    """
    span_end = indexed.end or indexed.start
    span_precision = indexed.end_precision if indexed.end else indexed.start_precision
    doc: dict[str, Any] = {
        "slug": indexed.slug,
        "name": indexed.name,
        "name_sort": indexed.name.lower(),
        "excerpt": indexed.excerpt,
        "tags": ",".join(indexed.tags),
        "links": ",".join(indexed.links),
        "linked_from": ",".join(indexed.linked_from),
        "entry_type": indexed.entry_type.value,
        "start": indexed.start,
        "start_precision": None if indexed.start_precision is None else int(indexed.start_precision),
        "end": indexed.end,
        "end_precision": None if indexed.end_precision is None else int(indexed.end_precision),
        "span_end": _span_end(span_end, span_precision),
        "address": indexed.address,
        "latitude": indexed.latitude,
        "longitude": indexed.longitude,
        "custom": dict(indexed.custom),
        "custom_text": collapse_whitespace(" ".join(indexed.custom.values())),
        "created": _to_naive_utc(indexed.created),
        "modified": _to_naive_utc(indexed.modified),
    }
    return {key: value for key, value in doc.items() if value is not None}


def _span_end(instant: datetime | None, precision: Precision | None) -> datetime | None:
    # Last moment an event covers: an event in "2004" runs until the end of 2004
    if instant is None:
        return None
    return period_end(instant, precision if precision is not None else Precision.DAY)


def from_document(fields: dict[str, Any]) -> IndexedEntry:
    """Rebuild an indexed entry from the stored fields of a Whoosh hit."""
    return IndexedEntry(
        slug=fields["slug"],
        name=fields["name"],
        excerpt=fields.get("excerpt", ""),
        tags=_split(fields.get("tags")),
        links=_split(fields.get("links")),
        linked_from=_split(fields.get("linked_from")),
        entry_type=EntryType(fields.get("entry_type", EntryType.NOTE.value)),
        start=fields.get("start"),
        start_precision=fields.get("start_precision"),
        end=fields.get("end"),
        end_precision=fields.get("end_precision"),
        address=fields.get("address", ""),
        latitude=fields.get("latitude", ""),
        longitude=fields.get("longitude", ""),
        custom=dict(fields.get("custom") or {}),
        created=_to_aware_utc(fields.get("created")),
        modified=_to_aware_utc(fields.get("modified")),
    )
