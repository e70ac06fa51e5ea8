"""Boolean query composition for entry searches."""

import logging
from datetime import datetime

from whoosh.fields import Schema
from whoosh.qparser import MultifieldParser, OrGroup, QueryParser
from whoosh.query import And, DateRange, Every, Or, Query, Term

from ..config import NAME_BOOST
from ..models import SearchFilter
from ..parser.dates import MAX_DATE, MIN_DATE

log = logging.getLogger(__name__)

# Fields searched by free-text keywords
KEYWORD_FIELDS = ["name", "excerpt", "tags", "address", "custom_text"]


def _parse_keywords(keywords: str, schema: Schema, fields: list[str]) -> Query:
    if len(fields) == 1:
        parser = QueryParser(fields[0], schema=schema, group=OrGroup)
    else:
        parser = MultifieldParser(fields, schema=schema, group=OrGroup)
    try:
        return parser.parse(keywords)
    except Exception as e:
        # If parsing fails, fall back to a simple term query
        log.debug("Could not parse keywords %r: %s", keywords, e)
        return Term(fields[0], keywords.lower())


def build_search_query(schema: Schema, search: SearchFilter) -> Query:
    """Build the query for a set of search criteria.

    The result is an AND of up to four clauses: entry type (any of the
    selected types), any-tags (at least one), only-tags (all of them) and
    keywords (name matches boosted over matches in other text). With no
    criteria at all every entry matches.
    """
    clauses: list[Query] = []

    if not search.types.has_all():
        clauses.append(Or([Term("entry_type", t.value) for t in search.types.selected()]))

    if search.any_tags:
        clauses.append(Or([Term("tags", tag) for tag in search.any_tags]))

    if search.only_tags:
        clauses.append(And([Term("tags", tag) for tag in search.only_tags]))

    keywords = search.keywords.strip()
    if keywords:
        name_query = _parse_keywords(keywords, schema, ["name"]).with_boost(NAME_BOOST)
        text_query = _parse_keywords(keywords, schema, KEYWORD_FIELDS)
        clauses.append(Or([name_query, text_query]))

    if not clauses:
        return Every()
    if len(clauses) == 1:
        return clauses[0]
    return And(clauses)


def build_timeline_query(lower: datetime = MIN_DATE, upper: datetime = MAX_DATE) -> Query:
    """Match entries starting at or after lower whose dates end at or before upper.

    Entries without an end date are treated as ending when they start.
    """
    return And([DateRange("start", lower, None), DateRange("span_end", None, upper)])
