"""Tests for the favorite set store: idempotence, convergence, failure modes."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from marketplace_api.db.models import Base, FavoriteProduct, Product, User
from marketplace_api.db.repositories import FavoriteRepository
from marketplace_api.errors import NotFoundError, StoreUnavailable, ValidationError
from marketplace_api.schemas.favorites import FavoriteSet
from marketplace_api.services.favorite_set_service import FavoriteSetService
from tests.api.support.in_memory_repositories import InMemoryFavoriteRepository

PRODUCT_A = "a" * 32
PRODUCT_B = "b" * 32


def _memory_service() -> tuple[FavoriteSetService, InMemoryFavoriteRepository]:
    repository = InMemoryFavoriteRepository()
    repository.add_user("user-1")
    repository.products.update({PRODUCT_A, PRODUCT_B})
    return FavoriteSetService(repository), repository


@pytest.mark.asyncio
async def test_add_twice_equals_add_once() -> None:
    service, _ = _memory_service()

    once = await service.add(user_id="user-1", product_id=PRODUCT_A)
    twice = await service.add(user_id="user-1", product_id=PRODUCT_A)

    assert once.favorites == [PRODUCT_A]
    assert twice.favorites == [PRODUCT_A]


@pytest.mark.asyncio
async def test_remove_absent_product_is_a_successful_no_op() -> None:
    service, _ = _memory_service()
    await service.add(user_id="user-1", product_id=PRODUCT_A)

    first = await service.remove(user_id="user-1", product_id=PRODUCT_B)
    second = await service.remove(user_id="user-1", product_id=PRODUCT_B)

    assert first.favorites == second.favorites == [PRODUCT_A]


@pytest.mark.asyncio
async def test_get_returns_a_defensive_copy() -> None:
    service, repository = _memory_service()
    await service.add(user_id="user-1", product_id=PRODUCT_A)

    snapshot = await service.get(user_id="user-1")
    snapshot.favorites.append("tampered")

    assert repository.committed("user-1") == [PRODUCT_A]
    assert (await service.get(user_id="user-1")).favorites == [PRODUCT_A]
    assert PRODUCT_A in snapshot


@pytest.mark.asyncio
async def test_hyphenated_identifiers_are_normalized() -> None:
    service, _ = _memory_service()
    hyphenated = "AAAAAAAA-AAAA-AAAA-AAAA-AAAAAAAAAAAA"

    result = await service.add(user_id="user-1", product_id=hyphenated)

    assert result.favorites == [PRODUCT_A]


@pytest.mark.asyncio
async def test_malformed_identifier_is_rejected_before_store_access() -> None:
    service, repository = _memory_service()
    repository.fail_with = AssertionError("store must not be touched")

    with pytest.raises(ValidationError):
        await service.add(user_id="user-1", product_id="not-an-id")
    with pytest.raises(ValidationError):
        await service.remove(user_id="user-1", product_id="")


@pytest.mark.asyncio
async def test_unknown_product_or_user_is_not_found() -> None:
    service, repository = _memory_service()

    with pytest.raises(NotFoundError):
        await service.add(user_id="user-1", product_id="c" * 32)
    with pytest.raises(NotFoundError):
        await service.add(user_id="ghost", product_id=PRODUCT_A)

    assert repository.committed("user-1") == []


@pytest.mark.asyncio
async def test_store_failure_never_reports_success() -> None:
    service, repository = _memory_service()
    repository.fail_with = OperationalError("INSERT", {}, Exception("server closed"))

    with pytest.raises(StoreUnavailable):
        await service.add(user_id="user-1", product_id=PRODUCT_A)

    repository.fail_with = None
    assert repository.rollbacks >= 1
    assert repository.committed("user-1") == []


@pytest.mark.asyncio
async def test_timeout_is_reported_as_unavailable() -> None:
    service, repository = _memory_service()
    repository.fail_with = TimeoutError("pool exhausted")

    with pytest.raises(StoreUnavailable):
        await service.get(user_id="user-1")


@pytest.mark.asyncio
async def test_profile_includes_favorites() -> None:
    service, repository = _memory_service()
    repository.add_user("user-2", name="User Two", email="two@example.com")
    await service.add(user_id="user-2", product_id=PRODUCT_B)

    profile = await service.get_profile(user_id="user-2")

    assert profile.name == "User Two"
    assert profile.email == "two@example.com"
    assert profile.favorites == [PRODUCT_B]


@pytest.mark.asyncio
async def test_sql_store_round_trip(session: AsyncSession, make_product, make_user) -> None:
    product = await make_product("Laptop Stand")
    other = await make_product("Wireless Mouse")
    user = await make_user()
    service = FavoriteSetService(FavoriteRepository(session))

    await service.add(user_id=user.id, product_id=product.id)
    await service.add(user_id=user.id, product_id=product.id)
    await service.add(user_id=user.id, product_id=other.id)
    after_remove = await service.remove(user_id=user.id, product_id=product.id)

    assert after_remove.favorites == [other.id]
    count = await session.scalar(
        select(func.count()).select_from(FavoriteProduct).where(
            FavoriteProduct.user_id == user.id
        )
    )
    assert count == 1


@pytest_asyncio.fixture
async def file_session_factory(tmp_path: Path):
    """Sessions sharing one on-disk SQLite database so they can race."""

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'favorites.db'}",
        future=True,
        connect_args={"timeout": 15},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as setup:
        setup.add_all(
            [
                User(id="racer", name="Racer", email="racer@example.com"),
                Product(id=PRODUCT_A, title="Portable Speaker", price=Decimal("49.99")),
            ]
        )
        await setup.commit()
    yield factory
    await engine.dispose()


async def _run_in_own_session(factory, action: str) -> FavoriteSet:
    async with factory() as own_session:
        service = FavoriteSetService(FavoriteRepository(own_session))
        operation = service.add if action == "add" else service.remove
        return await operation(user_id="racer", product_id=PRODUCT_A)


@pytest.mark.asyncio
async def test_concurrent_adds_store_a_single_row(file_session_factory) -> None:
    results = await asyncio.gather(
        *(_run_in_own_session(file_session_factory, "add") for _ in range(5))
    )

    assert all(result.favorites == [PRODUCT_A] for result in results)
    async with file_session_factory() as check:
        count = await check.scalar(select(func.count()).select_from(FavoriteProduct))
    assert count == 1


@pytest.mark.asyncio
async def test_concurrent_add_and_remove_converge(file_session_factory) -> None:
    outcomes = await asyncio.gather(
        _run_in_own_session(file_session_factory, "add"),
        _run_in_own_session(file_session_factory, "remove"),
        return_exceptions=True,
    )

    for outcome in outcomes:
        assert isinstance(outcome, (FavoriteSet, StoreUnavailable))

    async with file_session_factory() as check:
        final = await FavoriteSetService(FavoriteRepository(check)).get(user_id="racer")
    assert final.favorites in ([], [PRODUCT_A])
    assert len(final.favorites) == len(set(final.favorites))
