"""Text parsing: slugs, entry links and flexible dates."""

from .dates import (
    MAX_DATE,
    MIN_DATE,
    Precision,
    format_flex_date,
    is_flex_date,
    parse_flex_date,
    period_end,
    range_bounds,
)
from .links import LinkMatch, LinkScanner, extract_links, render_links
from .text import collapse_whitespace, slugify, truncate_at_whitespace, validate_entry_name

__all__ = [
    "MAX_DATE",
    "MIN_DATE",
    "Precision",
    "format_flex_date",
    "is_flex_date",
    "parse_flex_date",
    "period_end",
    "range_bounds",
    "LinkMatch",
    "LinkScanner",
    "extract_links",
    "render_links",
    "collapse_whitespace",
    "slugify",
    "truncate_at_whitespace",
    "validate_entry_name",
]
