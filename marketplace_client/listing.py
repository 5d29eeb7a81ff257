"""Debounced, sequence-numbered catalog fetching for one client session.

Typing restarts a debounce timer; only the term present when the timer fires
becomes the *effective* term, and a change of effective term resets the page
to 1.  Page clicks fetch immediately.  Every fetch is numbered when issued,
and a response is applied only if its number is still the latest one issued,
so a slow response for an old term can never overwrite a newer page.  While a
fetch is outstanding the previous result stays on screen.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from marketplace_api.errors import MarketplaceError, ValidationError
from marketplace_api.schemas.product import ListingRequest, ListingResult
from marketplace_client.settings import ClientSettings, get_client_settings

logger = logging.getLogger(__name__)


class ListingFetcher(Protocol):
    async def fetch_listing(self, request: ListingRequest) -> ListingResult: ...


@dataclass(frozen=True, slots=True)
class ListingState:
    """Snapshot of everything a listing view needs to render."""

    raw_term: str
    effective_term: str
    page: int
    page_size: int
    result: ListingResult | None
    loading: bool
    error: MarketplaceError | None

    @property
    def is_empty(self) -> bool:
        """``True`` once a fetch succeeded with no products on the page."""

        return self.result is not None and not self.result.products


StateListener = Callable[[ListingState], None]


class ListingSynchronizer:
    """Turns search edits and page clicks into an ordered stream of fetches."""

    def __init__(
        self,
        fetcher: ListingFetcher,
        *,
        page_size: int | None = None,
        debounce_seconds: float | None = None,
        on_change: StateListener | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        resolved = settings or get_client_settings()
        self._fetcher = fetcher
        self._page_size = page_size if page_size is not None else resolved.page_size
        self._debounce_seconds = (
            debounce_seconds
            if debounce_seconds is not None
            else resolved.search_debounce_seconds
        )
        self._on_change = on_change

        self._raw_term = ""
        self._effective_term = ""
        self._page = 1
        self._result: ListingResult | None = None
        self._error: MarketplaceError | None = None

        self._sequence = itertools.count(1)
        self._latest_seq = 0
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._outstanding: set[int] = set()
        self._closed = False

    @property
    def state(self) -> ListingState:
        return ListingState(
            raw_term=self._raw_term,
            effective_term=self._effective_term,
            page=self._page,
            page_size=self._page_size,
            result=self._result,
            loading=self.loading,
            error=self._error,
        )

    @property
    def loading(self) -> bool:
        """Whether the most recently issued fetch is still outstanding."""

        return self._latest_seq in self._outstanding

    @property
    def latest_sequence(self) -> int:
        return self._latest_seq

    def start(self) -> None:
        """Issue the initial fetch for the current term and page."""

        self._issue()

    def set_search_term(self, term: str) -> None:
        """Record a keystroke and (re)start the debounce timer."""

        self._ensure_open()
        self._raw_term = term
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._debounce_seconds, self._debounce_elapsed)
        self._emit()

    def go_to_page(self, page: int) -> None:
        """Fetch ``page`` of the current effective term without debouncing."""

        self._ensure_open()
        if page < 1:
            raise ValidationError("Invalid page", detail="page must be >= 1")
        self._page = page
        self._issue()

    def clear_search(self) -> None:
        """Drop the search term immediately, skipping the debounce delay."""

        self._ensure_open()
        self._cancel_timer()
        self._raw_term = ""
        if self._effective_term:
            self._effective_term = ""
            self._page = 1
            self._issue()
        else:
            self._emit()

    def retry(self) -> None:
        """Re-issue the request for the current term and page."""

        self._issue()

    async def wait_idle(self) -> None:
        """Wait until no debounce timer is armed and no fetch is in flight."""

        loop = asyncio.get_running_loop()
        while self._timer is not None or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks))
            elif self._timer is not None:
                await asyncio.sleep(max(0.0, self._timer.when() - loop.time()))

    async def aclose(self) -> None:
        """Cancel the timer and abandon in-flight fetches."""

        self._closed = True
        self._cancel_timer()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._outstanding.clear()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("ListingSynchronizer is closed")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _debounce_elapsed(self) -> None:
        self._timer = None
        term = self._raw_term.strip()
        if term == self._effective_term:
            logger.debug("Debounced term %r unchanged; no fetch issued", term)
            return
        self._effective_term = term
        self._page = 1
        self._issue()

    def _issue(self) -> None:
        self._ensure_open()
        request = ListingRequest.build(
            search_term=self._effective_term,
            page=self._page,
            page_size=self._page_size,
        )
        seq = next(self._sequence)
        self._latest_seq = seq
        self._outstanding.add(seq)
        task = asyncio.get_running_loop().create_task(self._run(seq, request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(
            "Issued listing fetch #%d term=%r page=%d",
            seq,
            request.search_term,
            request.page,
        )
        self._emit()

    async def _run(self, seq: int, request: ListingRequest) -> None:
        try:
            result = await self._fetcher.fetch_listing(request)
        except MarketplaceError as exc:
            self._outstanding.discard(seq)
            if self._is_stale(seq):
                return
            logger.info("Listing fetch #%d failed: %s", seq, exc)
            self._error = exc
            self._emit()
            return
        except BaseException:
            self._outstanding.discard(seq)
            if seq == self._latest_seq and not self._closed:
                self._emit()
            raise

        self._outstanding.discard(seq)
        if self._is_stale(seq):
            return
        self._result = result
        self._error = None
        self._emit()

    def _is_stale(self, seq: int) -> bool:
        if seq != self._latest_seq:
            logger.debug(
                "Discarded stale listing response #%d (latest is #%d)",
                seq,
                self._latest_seq,
            )
            return True
        return False

    def _emit(self) -> None:
        if self._on_change is not None:
            self._on_change(self.state)


__all__ = ["ListingFetcher", "ListingState", "ListingSynchronizer"]
