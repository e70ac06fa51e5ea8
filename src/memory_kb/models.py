"""Pydantic models for the knowledge base."""

import math
from datetime import UTC, datetime
from enum import Enum, IntEnum

from pydantic import BaseModel, Field, field_validator

from .parser.dates import Precision, is_flex_date
from .parser.text import slugify, validate_entry_name


def _now() -> datetime:
    return datetime.now(UTC)


class EntryType(str, Enum):
    """Kinds of entries."""

    NOTE = "Note"
    EVENT = "Event"
    PERSON = "Person"
    PLACE = "Place"
    THING = "Thing"


class Entry(BaseModel):
    """A person, place, thing, event or note."""

    name: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    type: EntryType = EntryType.NOTE
    start: str = ""  # Events
    end: str = ""  # Events
    address: str = ""  # Place
    latitude: str = ""  # Place
    longitude: str = ""  # Place
    custom: dict[str, str] = Field(default_factory=dict)
    created: datetime = Field(default_factory=_now)
    modified: datetime = Field(default_factory=_now)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return validate_entry_name(value)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str]) -> list[str]:
        return normalize_tags(value)

    @field_validator("start", "end")
    @classmethod
    def _check_flex_date(cls, value: str) -> str:
        if not is_flex_date(value):
            raise ValueError(f"{value!r} is not a date in YYYY, YYYY-MM or YYYY-MM-DD form")
        return value

    @property
    def slug(self) -> str:
        """Identifier derived from the name; never stored separately."""
        return slugify(self.name)


def normalize_tags(tags: list[str]) -> list[str]:
    """Lowercase, strip and deduplicate tags, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        tag = tag.replace(",", " ").strip().lower()
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


class EntryTypes(BaseModel):
    """A selection of zero or more entry types used to filter searches."""

    note: bool = False
    event: bool = False
    person: bool = False
    place: bool = False
    thing: bool = False

    @classmethod
    def of(cls, *types: EntryType) -> "EntryTypes":
        return cls(**{t.name.lower(): True for t in types})

    def selected(self) -> list[EntryType]:
        return [t for t in EntryType if getattr(self, t.name.lower())]

    def has_all(self) -> bool:
        """True if every type or no type is selected; either means no restriction."""
        count = len(self.selected())
        return count == 0 or count == len(EntryType)


class SortOrder(IntEnum):
    """Result orderings."""

    SCORE = 0  # relevance, best first
    RECENT = 1  # modified, newest first
    NAME = 2  # name, alphabetical


class SearchFilter(BaseModel):
    """Criteria combined by the query builder."""

    types: EntryTypes = Field(default_factory=EntryTypes)
    any_tags: list[str] = Field(default_factory=list)
    only_tags: list[str] = Field(default_factory=list)
    keywords: str = ""

    @field_validator("any_tags", "only_tags")
    @classmethod
    def _normalize_tags(cls, value: list[str]) -> list[str]:
        return normalize_tags(value)


class IndexedEntry(BaseModel):
    """Flattened projection of an Entry stored in the search index."""

    slug: str
    name: str
    excerpt: str = ""
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    linked_from: list[str] = Field(default_factory=list)
    entry_type: EntryType = EntryType.NOTE
    start: datetime | None = None
    start_precision: Precision | None = None
    end: datetime | None = None
    end_precision: Precision | None = None
    address: str = ""
    latitude: str = ""
    longitude: str = ""
    custom: dict[str, str] = Field(default_factory=dict)
    created: datetime | None = None
    modified: datetime | None = None


class EntryResults(BaseModel):
    """One page of search results and the settings that produced it."""

    entries: list[Entry] = Field(default_factory=list)
    filter: SearchFilter = Field(default_factory=SearchFilter)
    sort: SortOrder = SortOrder.SCORE
    total: int = 0
    page_no: int = 1
    page_size: int = 10

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self.page_size)


class RebuildReport(BaseModel):
    """Outcome of rebuilding the search index from entry files."""

    indexed: int
    total: int
    failed: list[str] = Field(default_factory=list)
