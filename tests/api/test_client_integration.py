"""The client components driving the real app over ``httpx.ASGITransport``."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.auth import issue_token
from marketplace_api.cache import CacheClient, get_cache_client
from marketplace_api.db.connection import get_db
from marketplace_api.main import app
from marketplace_client import (
    FavoriteCoordinator,
    ListingSynchronizer,
    MarketplaceClient,
    ToggleOutcome,
)


@pytest_asyncio.fixture
async def wired_app(session: AsyncSession) -> AsyncIterator[None]:
    async def _session_override() -> AsyncIterator[AsyncSession]:
        yield session

    async def _cache_override() -> CacheClient:
        return CacheClient(None)

    app.dependency_overrides[get_db] = _session_override
    app.dependency_overrides[get_cache_client] = _cache_override
    try:
        yield
    finally:
        app.dependency_overrides.clear()


def _client_for(user_id: str | None) -> MarketplaceClient:
    return MarketplaceClient(
        base_url="http://test",
        token=issue_token(user_id) if user_id else None,
        transport=ASGITransport(app=app),
    )


@pytest.mark.asyncio
async def test_listing_and_toggle_against_live_app(
    wired_app, make_product, make_user
) -> None:
    products = [await make_product(f"Phone {index}") for index in range(8)]
    user = await make_user()

    async with _client_for(user.id) as client:
        profile = await client.fetch_profile()
        coordinator = FavoriteCoordinator(client)
        coordinator.seed(profile.favorites)

        sync = ListingSynchronizer(client, page_size=6, debounce_seconds=0.01)
        sync.start()
        await sync.wait_idle()
        listing = sync.state.result
        assert listing is not None
        assert listing.total_pages == 2
        assert len(listing.products) == 6

        outcome = await coordinator.toggle(products[0].id)
        assert outcome is ToggleOutcome.CONFIRMED
        annotated = coordinator.annotate(listing.products)
        assert [item.is_favorite for item in annotated][:2] == [True, False]

        refreshed = await client.fetch_profile()
        assert refreshed.favorites == [products[0].id]
        await sync.aclose()


@pytest.mark.asyncio
async def test_toggle_by_unknown_caller_reverts(wired_app, make_product) -> None:
    product = await make_product("Laptop Stand")
    notices: list[str] = []

    async with _client_for("ghost") as client:
        coordinator = FavoriteCoordinator(
            client, on_failure=lambda pid, exc: notices.append(exc.message)
        )
        outcome = await coordinator.toggle(product.id)

    assert outcome is ToggleOutcome.REVERTED
    assert coordinator.is_favorited(product.id) is False
    assert notices == ["caller not recognized"]
