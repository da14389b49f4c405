"""Merge independently paginated search collections into one result."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import Enum

from protocol_forum.core.settings import settings
from protocol_forum.schemas.protocol import Protocol, Tag, Thread
from protocol_forum.schemas.search import ResultPage, SearchResult, Suggestions

logger = logging.getLogger(__name__)

ProtocolFetcher = Callable[[str, int, int], ResultPage[Protocol]]
ThreadFetcher = Callable[[str, int, int], ResultPage[Thread]]


class SearchKind(str, Enum):
    """Sub-collections of a merged search result."""

    PROTOCOLS = "protocols"
    THREADS = "threads"


def is_blank(query: str | None) -> bool:
    return query is None or not query.strip()


def empty_search(query: str = "") -> SearchResult:
    """Return the result for a query that was never sent upstream."""
    return SearchResult(query=query or "")


def merge_search(
    query: str,
    protocols: ResultPage[Protocol],
    threads: ResultPage[Thread],
) -> SearchResult:
    """Compose two fetched pages into one search result.

    ``grand_total`` is the sum of both collection totals, so it does not
    depend on which page of either collection is displayed.
    """
    return SearchResult(
        query=query,
        protocols=protocols,
        threads=threads,
        grand_total=protocols.total + threads.total,
    )


def merge_suggestions(
    protocols: Sequence[Protocol],
    threads: Sequence[Thread],
    tags: Sequence[Tag],
) -> Suggestions:
    """Combine type-ahead results exactly as the upstream capped them."""
    return Suggestions(protocols=list(protocols), threads=list(threads), tags=list(tags))


class SearchPaginator:
    """Two unlinked page cursors composed into one search result.

    Advancing one collection re-fetches only that collection; the other
    page and the grand total stay exactly as they were.
    """

    def __init__(
        self,
        query: str,
        fetch_protocols: ProtocolFetcher,
        fetch_threads: ThreadFetcher,
        *,
        per_page: int | None = None,
    ) -> None:
        self.query = query.strip() if query else ""
        self.per_page = settings.clamp_per_page(per_page)
        self._fetch_protocols = fetch_protocols
        self._fetch_threads = fetch_threads
        self._result: SearchResult | None = None

    @property
    def result(self) -> SearchResult:
        if self._result is None:
            return self.run()
        return self._result

    def run(self, protocols_page: int = 1, threads_page: int = 1) -> SearchResult:
        """Execute the query, fetching both collections.

        An empty or whitespace-only query short-circuits without calling
        either fetcher.
        """
        if is_blank(self.query):
            logger.debug("Skipping upstream search for blank query")
            self._result = empty_search(self.query)
            return self._result

        protocols = self._fetch_protocols(self.query, protocols_page, self.per_page)
        threads = self._fetch_threads(self.query, threads_page, self.per_page)
        self._result = merge_search(self.query, protocols, threads)
        return self._result

    def goto(self, kind: SearchKind, page: int) -> SearchResult:
        """Move one collection's cursor to ``page``."""
        current = self.result
        if is_blank(self.query):
            return current
        if page < 1:
            raise ValueError("page must be >= 1")

        if kind is SearchKind.PROTOCOLS:
            protocols = self._fetch_protocols(self.query, page, self.per_page)
            updated = current.model_copy(update={"protocols": protocols})
        else:
            threads = self._fetch_threads(self.query, page, self.per_page)
            updated = current.model_copy(update={"threads": threads})
        self._result = updated
        return updated

    def advance(self, kind: SearchKind) -> SearchResult:
        """Fetch the next page of ``kind`` if there is one."""
        current = self.result
        page = current.protocols if kind is SearchKind.PROTOCOLS else current.threads
        if not page.has_next:
            return current
        return self.goto(kind, page.page + 1)


def run_search(
    query: str,
    fetch_protocols: ProtocolFetcher,
    fetch_threads: ThreadFetcher,
    *,
    per_page: int | None = None,
) -> SearchResult:
    """Run a one-shot search over both collections."""
    return SearchPaginator(query, fetch_protocols, fetch_threads, per_page=per_page).run()
