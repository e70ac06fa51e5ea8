"""Page-at-a-time browsing of search results."""

import math

from .indexer.whoosh_index import EntryIndex
from .models import EntryResults, SearchFilter, SortOrder


class ResultPager:
    """Steps through search results one page at a time.

    Only the current page is held. Every move re-runs the query, so a page
    reflects entries added, edited or deleted since the previous one was shown.
    """

    def __init__(
        self,
        entry_index: EntryIndex,
        search: SearchFilter | None = None,
        sort: SortOrder = SortOrder.SCORE,
        page_size: int = 10,
    ) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")
        self._index = entry_index
        self.search = search or SearchFilter()
        self.sort = sort
        self.page_size = page_size
        self.page_no = 1
        self.total = 0
        self.results: EntryResults | None = None

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self.page_size)

    def fetch(self) -> EntryResults:
        """Run the query for the current page."""
        self.results = self._index.search(self.search, self.sort, self.page_no, self.page_size)
        self.total = self.results.total
        return self.results

    def next(self) -> bool:
        """Move to the next page. Returns False if already on the last page."""
        if self.page_no * self.page_size >= self.total:
            return False
        self.page_no += 1
        self.fetch()
        return True

    def prev(self) -> bool:
        """Move to the previous page. Returns False if already on the first page."""
        if self.page_no == 1:
            return False
        self.page_no -= 1
        self.fetch()
        return True
