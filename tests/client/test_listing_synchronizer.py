"""Tests for debounced search, page navigation, and the staleness guard."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from marketplace_api.errors import StoreUnavailable, ValidationError
from marketplace_api.schemas.product import ListingRequest, ListingResult, ProductRead
from marketplace_client.api_client import MarketplaceClient
from marketplace_client.listing import ListingState, ListingSynchronizer

DEBOUNCE = 0.05


def _result_for(request: ListingRequest, label: str | None = None) -> ListingResult:
    title = label or f"{request.search_term or 'all'}-p{request.page}"
    return ListingResult(
        products=[ProductRead(id=title, title=title, price="1.00")],
        total=request.page * request.page_size,
        total_pages=request.page,
        current_page=request.page,
        page_size=request.page_size,
    )


class ControlledFetcher:
    """Fetcher whose responses are released explicitly, in any order."""

    def __init__(self) -> None:
        self.requests: list[ListingRequest] = []
        self._waiters: list[asyncio.Future[ListingResult]] = []

    async def fetch_listing(self, request: ListingRequest) -> ListingResult:
        self.requests.append(request)
        waiter: asyncio.Future[ListingResult] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return await waiter

    def respond(self, index: int, label: str | None = None) -> None:
        self._waiters[index].set_result(_result_for(self.requests[index], label))

    def fail(self, index: int, error: BaseException) -> None:
        self._waiters[index].set_exception(error)


class ImmediateFetcher:
    def __init__(self) -> None:
        self.requests: list[ListingRequest] = []

    async def fetch_listing(self, request: ListingRequest) -> ListingResult:
        self.requests.append(request)
        return _result_for(request)


async def _settle() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


def _synchronizer(fetcher, **kwargs) -> ListingSynchronizer:
    return ListingSynchronizer(
        fetcher, page_size=6, debounce_seconds=DEBOUNCE, **kwargs
    )


@pytest.mark.asyncio
async def test_slow_earlier_response_never_overwrites_later_one() -> None:
    fetcher = ControlledFetcher()
    sync = _synchronizer(fetcher)

    sync.set_search_term("x")
    await asyncio.sleep(DEBOUNCE * 3)
    sync.set_search_term("xy")
    await asyncio.sleep(DEBOUNCE * 3)
    assert [r.search_term for r in fetcher.requests] == ["x", "xy"]

    fetcher.respond(1, label="B")
    await _settle()
    fetcher.respond(0, label="A")
    await sync.wait_idle()

    assert sync.state.result is not None
    assert sync.state.result.products[0].title == "B"
    assert sync.state.loading is False
    await sync.aclose()


@pytest.mark.asyncio
async def test_burst_of_keystrokes_issues_a_single_fetch() -> None:
    fetcher = ImmediateFetcher()
    sync = _synchronizer(fetcher)

    for partial in ("p", "ph", "pho", "phon", "phone"):
        sync.set_search_term(partial)
        await asyncio.sleep(DEBOUNCE / 10)
    await sync.wait_idle()

    assert [r.search_term for r in fetcher.requests] == ["phone"]
    assert sync.state.effective_term == "phone"
    await sync.aclose()


@pytest.mark.asyncio
async def test_effective_term_change_resets_page() -> None:
    fetcher = ImmediateFetcher()
    sync = _synchronizer(fetcher)

    sync.go_to_page(3)
    await sync.wait_idle()
    sync.set_search_term("cable")
    await sync.wait_idle()

    assert [(r.search_term, r.page) for r in fetcher.requests] == [
        ("", 3),
        ("cable", 1),
    ]
    assert sync.state.page == 1
    await sync.aclose()


@pytest.mark.asyncio
async def test_unchanged_effective_term_does_not_refetch() -> None:
    fetcher = ImmediateFetcher()
    sync = _synchronizer(fetcher)

    sync.set_search_term("mouse")
    await sync.wait_idle()
    sync.go_to_page(2)
    await sync.wait_idle()
    sync.set_search_term("mouse ")
    await sync.wait_idle()

    assert [(r.search_term, r.page) for r in fetcher.requests] == [
        ("mouse", 1),
        ("mouse", 2),
    ]
    assert sync.state.page == 2
    await sync.aclose()


@pytest.mark.asyncio
async def test_page_click_fetches_without_debounce() -> None:
    fetcher = ControlledFetcher()
    sync = _synchronizer(fetcher)

    sync.go_to_page(2)

    assert sync.state.loading is True
    await _settle()
    assert [(r.search_term, r.page, r.page_size) for r in fetcher.requests] == [
        ("", 2, 6)
    ]
    fetcher.respond(0)
    await sync.wait_idle()
    await sync.aclose()


@pytest.mark.asyncio
async def test_previous_result_stays_visible_while_loading_and_on_error() -> None:
    fetcher = ControlledFetcher()
    states: list[ListingState] = []
    sync = _synchronizer(fetcher, on_change=states.append)

    sync.start()
    await _settle()
    fetcher.respond(0, label="first")
    await _settle()
    shown = sync.state.result

    sync.go_to_page(2)
    assert sync.state.loading is True
    assert sync.state.result is shown
    await _settle()

    fetcher.fail(1, StoreUnavailable())
    await sync.wait_idle()

    assert sync.state.result is shown
    assert isinstance(sync.state.error, StoreUnavailable)
    assert sync.state.loading is False
    assert all(state.result is not None for state in states[2:])

    sync.retry()
    await _settle()
    fetcher.respond(2, label="second")
    await sync.wait_idle()
    assert sync.state.error is None
    assert sync.state.result.products[0].title == "second"
    await sync.aclose()


@pytest.mark.asyncio
async def test_stale_error_is_ignored() -> None:
    fetcher = ControlledFetcher()
    sync = _synchronizer(fetcher)

    sync.go_to_page(1)
    sync.go_to_page(2)
    await _settle()
    fetcher.respond(1, label="page-two")
    fetcher.fail(0, StoreUnavailable())
    await sync.wait_idle()

    assert sync.state.error is None
    assert sync.state.result.products[0].title == "page-two"
    await sync.aclose()


@pytest.mark.asyncio
async def test_clear_search_skips_debounce() -> None:
    fetcher = ImmediateFetcher()
    sync = _synchronizer(fetcher)

    sync.set_search_term("speaker")
    await sync.wait_idle()
    sync.set_search_term("speakers")
    sync.clear_search()
    await sync.wait_idle()

    assert [r.search_term for r in fetcher.requests] == ["speaker", ""]
    assert sync.state.raw_term == ""
    assert sync.state.page == 1
    await sync.aclose()


@pytest.mark.asyncio
async def test_invalid_page_is_rejected_locally() -> None:
    fetcher = ImmediateFetcher()
    sync = _synchronizer(fetcher)

    with pytest.raises(ValidationError):
        sync.go_to_page(0)
    assert fetcher.requests == []
    await sync.aclose()


@pytest.mark.asyncio
async def test_aclose_abandons_in_flight_fetches() -> None:
    fetcher = ControlledFetcher()
    sync = _synchronizer(fetcher)

    sync.start()
    sync.set_search_term("pending")
    await _settle()
    await sync.aclose()

    assert sync.state.loading is False
    with pytest.raises(RuntimeError):
        sync.go_to_page(2)


@pytest.mark.asyncio
async def test_html_success_body_surfaces_as_error_state() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy</html>")

    async with MarketplaceClient(
        base_url="http://api.test", transport=httpx.MockTransport(handler)
    ) as client:
        sync = _synchronizer(client)
        sync.start()
        await sync.wait_idle()

        assert isinstance(sync.state.error, StoreUnavailable)
        assert sync.state.loading is False
        assert sync.state.result is None
        await sync.aclose()
