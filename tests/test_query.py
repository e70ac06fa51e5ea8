"""Tests for search and timeline query composition."""

from datetime import datetime

import pytest
from whoosh.query import And, DateRange, Every, Or, Term

from memory_kb.config import NAME_BOOST
from memory_kb.indexer.query import build_search_query, build_timeline_query
from memory_kb.indexer.whoosh_index import entry_schema
from memory_kb.models import EntryType, EntryTypes, SearchFilter


@pytest.fixture
def schema():
    return entry_schema()


class TestSearchQuery:
    def test_empty_filter_matches_everything(self, schema):
        assert isinstance(build_search_query(schema, SearchFilter()), Every)

    @pytest.mark.parametrize("types", [EntryTypes(), EntryTypes.of(*EntryType)])
    def test_no_or_all_types_is_no_restriction(self, schema, types):
        assert isinstance(build_search_query(schema, SearchFilter(types=types)), Every)

    def test_type_clause(self, schema):
        query = build_search_query(schema, SearchFilter(types=EntryTypes.of(EntryType.PERSON, EntryType.PLACE)))
        assert query == Or([Term("entry_type", "Person"), Term("entry_type", "Place")])

    def test_any_tags_is_or(self, schema):
        query = build_search_query(schema, SearchFilter(any_tags=["tag0", "Tag1"]))
        assert query == Or([Term("tags", "tag0"), Term("tags", "tag1")])

    def test_only_tags_is_and(self, schema):
        query = build_search_query(schema, SearchFilter(only_tags=["tag0", "tag1"]))
        assert query == And([Term("tags", "tag0"), Term("tags", "tag1")])

    def test_keyword_clause_boosts_name(self, schema):
        query = build_search_query(schema, SearchFilter(keywords="lovelace"))
        assert isinstance(query, Or)
        name_query, text_query = query.subqueries
        assert name_query.boost == NAME_BOOST
        assert name_query.fieldname == "name"
        assert text_query.boost == 1.0

    def test_clauses_are_anded(self, schema):
        search = SearchFilter(
            types=EntryTypes.of(EntryType.EVENT),
            any_tags=["a"],
            only_tags=["b"],
            keywords="party",
        )
        query = build_search_query(schema, search)
        assert isinstance(query, And)
        assert len(query.subqueries) == 4

    def test_blank_keywords_ignored(self, schema):
        assert isinstance(build_search_query(schema, SearchFilter(keywords="   ")), Every)


class TestTimelineQuery:
    def test_bounds(self):
        lower, upper = datetime(2001, 1, 1), datetime(2003, 1, 3)
        query = build_timeline_query(lower, upper)
        assert isinstance(query, And)
        start_clause, end_clause = query.subqueries
        assert isinstance(start_clause, DateRange)
        assert start_clause.fieldname == "start"
        assert end_clause.fieldname == "span_end"
