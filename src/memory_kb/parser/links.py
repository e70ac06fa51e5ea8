"""Link extraction and rendering for entry descriptions.

Entries reference each other by name in square brackets, as in
``[Entry Name]``. Brackets can be used for non-linking purposes by
prefixing a ~ as in ``[~Not a link]``; such spans are left exactly as
written. A bracketed span followed immediately by ``(`` is a Markdown
link to somewhere else and is ignored. Links that cannot be resolved are
rendered with a ? prefix as in ``[?Entry Name]``, and the prefix is
removed again once an entry with that name exists.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from ..config import UNRESOLVED_MARKER
from .text import slugify

log = logging.getLogger(__name__)

# [, then a letter/digit or the unresolved marker, then anything but ] or ~, then ],
# optionally followed by ( which makes it an external Markdown link.
LINK_PATTERN = r"\[((?:[^\W_]|\?)[^~\]]*)\](\()?"

_SPACE_RUN = re.compile(r" {2,}")
# A resolved reference must still open with a letter or digit to match LINK_PATTERN
_LEADING_NON_ALNUM = re.compile(r"^[\W_]+")


@dataclass(frozen=True)
class LinkMatch:
    """A bracketed reference found in text."""

    start: int
    end: int
    raw: str  # text between the brackets, as written
    slug: str
    unresolved: bool  # written with the unresolved marker


class LinkScanner:
    """Finds [Entry Name] references in text.

    The pattern is compiled once per scanner. Callers only use
    ``scan``/``extract``/``render``, so the matching strategy can be replaced
    by a subclass without touching them.
    """

    def __init__(self, pattern: str = LINK_PATTERN) -> None:
        self._pattern: re.Pattern[str] | None
        try:
            self._pattern = re.compile(pattern)
        except re.error as e:
            log.warning("Failed to compile link pattern %r: %s", pattern, e)
            self._pattern = None

    def scan(self, text: str) -> list[LinkMatch]:
        """Return the entry references in text, in order of appearance."""
        if self._pattern is None or not text:
            return []

        found = []
        for match in self._pattern.finditer(text):
            if match.group(2):
                continue
            raw = match.group(1)
            name = _SPACE_RUN.sub(" ", raw.replace("\n", " "))
            unresolved = name.startswith(UNRESOLVED_MARKER)
            if unresolved:
                name = name.lstrip(UNRESOLVED_MARKER)
            slug = slugify(name)
            if not slug:
                continue
            found.append(LinkMatch(match.start(), match.end(), raw, slug, unresolved))
        return found

    def extract(self, text: str) -> list[str]:
        """Return the unique slugs referenced in text, in order of first appearance."""
        slugs: list[str] = []
        seen: set[str] = set()
        for link in self.scan(text):
            if link.slug not in seen:
                seen.add(link.slug)
                slugs.append(link.slug)
        return slugs

    def render(self, text: str, exists: Callable[[str], bool]) -> str:
        """Mark each reference as resolved or unresolved.

        Args:
            text: Description text.
            exists: Predicate telling whether a slug names an existing entry.

        Returns:
            Text with ? added to references whose target is missing and
            removed from references whose target now exists. Rendering
            the result again with the same predicate returns it unchanged.
        """
        parts: list[str] = []
        pos = 0
        for link in self.scan(text):
            if exists(link.slug):
                if not link.unresolved:
                    continue
                replacement = "[" + _LEADING_NON_ALNUM.sub("", link.raw) + "]"
            elif not link.unresolved:
                replacement = "[" + UNRESOLVED_MARKER + link.raw + "]"
            else:
                continue
            parts.append(text[pos : link.start])
            parts.append(replacement)
            pos = link.end
        if not parts:
            return text
        parts.append(text[pos:])
        return "".join(parts)


_default_scanner = LinkScanner()


def extract_links(text: str) -> list[str]:
    """Extract the slugs of entries referenced in text."""
    return _default_scanner.extract(text)


def render_links(text: str, exists: Callable[[str], bool]) -> str:
    """Render references in text against an existence predicate."""
    return _default_scanner.render(text, exists)
