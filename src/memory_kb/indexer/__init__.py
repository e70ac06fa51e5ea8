"""Entry search index built on Whoosh."""

from .projection import from_document, from_indexed, to_document, to_indexed
from .query import build_search_query, build_timeline_query
from .whoosh_index import EntryIndex, IndexState, entry_schema

__all__ = [
    "EntryIndex",
    "IndexState",
    "entry_schema",
    "build_search_query",
    "build_timeline_query",
    "from_document",
    "from_indexed",
    "to_document",
    "to_indexed",
]
