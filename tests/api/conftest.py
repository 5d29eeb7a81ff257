"""Shared fixtures for database-backed catalog and favorite tests."""

from __future__ import annotations

import itertools
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from marketplace_api.db.models import Base, Product, User

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

ProductFactory = Callable[..., Awaitable[Product]]
UserFactory = Callable[..., Awaitable[User]]


@pytest_asyncio.fixture
async def session() -> AsyncIterator[AsyncSession]:
    """Provide an in-memory SQLite session for integration-style tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(engine, expire_on_commit=False)
    async with async_session() as db_session:
        yield db_session
        if db_session.in_transaction():
            await db_session.rollback()
    await engine.dispose()


@pytest.fixture
def make_product(session: AsyncSession) -> ProductFactory:
    """Insert products with strictly increasing ``created_at`` values."""

    ticks = itertools.count()

    async def _make(
        title: str,
        *,
        price: str = "10.00",
        created_at: datetime | None = None,
        product_id: str | None = None,
    ) -> Product:
        product = Product(
            title=title,
            price=Decimal(price),
            description=f"{title} description",
            image=None,
            created_at=created_at or BASE_TIME + timedelta(seconds=next(ticks)),
        )
        if product_id is not None:
            product.id = product_id
        session.add(product)
        await session.commit()
        return product

    return _make


@pytest.fixture
def make_user(session: AsyncSession) -> UserFactory:
    counter = itertools.count(1)

    async def _make(name: str | None = None) -> User:
        index = next(counter)
        user = User(name=name or f"User {index}", email=f"user{index}@example.com")
        session.add(user)
        await session.commit()
        return user

    return _make
