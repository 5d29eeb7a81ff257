#!/usr/bin/env python
"""Load the sample catalog and demo users.

Usage:
    python scripts/seed_products.py
    python scripts/seed_products.py --reset

Products get strictly increasing ``created_at`` values so the listing order
matches the order below.  Existing rows (matched by title or email) are left
alone unless ``--reset`` wipes the tables first.  Cached listing pages are
invalidated afterwards either way.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from rich.console import Console
from rich.table import Table
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.auth import issue_token
from marketplace_api.cache import close_redis, get_cache_client, invalidate_catalog
from marketplace_api.db.connection import (
    dispose_engine,
    get_async_session_context,
    get_engine,
)
from marketplace_api.db.models import Base, FavoriteProduct, Product, User
from marketplace_api.main import _validate_environment

console = Console()


@dataclass(frozen=True, slots=True)
class SampleProduct:
    title: str
    price: Decimal
    description: str
    image: str


SAMPLE_PRODUCTS: tuple[SampleProduct, ...] = (
    SampleProduct(
        "Wireless Headphones",
        Decimal("79.99"),
        "Premium noise-cancelling wireless headphones with 30-hour battery life",
        "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=400&h=400&fit=crop",
    ),
    SampleProduct(
        "Smartwatch Pro",
        Decimal("299.99"),
        "Advanced smartwatch with fitness tracking and health monitoring",
        "https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=400&h=400&fit=crop",
    ),
    SampleProduct(
        "USB-C Cable",
        Decimal("12.99"),
        "Durable USB-C charging and data cable, 6 feet long",
        "https://images.unsplash.com/photo-1625948515291-69613efd103f?w=400&h=400&fit=crop",
    ),
    SampleProduct(
        "Portable Speaker",
        Decimal("49.99"),
        "Waterproof Bluetooth speaker with powerful bass and 12-hour battery",
        "https://images.unsplash.com/photo-1608043152269-423dbba4e7e1?w=400&h=400&fit=crop",
    ),
    SampleProduct(
        "Phone Screen Protector",
        Decimal("9.99"),
        "Tempered glass screen protector for smartphones, anti-scratch",
        "https://images.unsplash.com/photo-1526170375885-4d8ecf77b99f?w=400&h=400&fit=crop",
    ),
    SampleProduct(
        "Laptop Stand",
        Decimal("34.99"),
        "Adjustable aluminum laptop stand for better ergonomics",
        "https://images.unsplash.com/photo-1527864550417-7fd91fc51a46?w=400&h=400&fit=crop",
    ),
    SampleProduct(
        "Wireless Mouse",
        Decimal("24.99"),
        "Ergonomic wireless mouse with precision tracking and 18-month battery",
        "https://images.unsplash.com/photo-1527814050087-3793815479db?w=400&h=400&fit=crop",
    ),
    SampleProduct(
        "Phone Charging Case",
        Decimal("39.99"),
        "Battery-powered phone case, provides extra 100 hours of battery",
        "https://images.unsplash.com/photo-1556656793-08538906a9f8?w=400&h=400&fit=crop",
    ),
    SampleProduct(
        "4K Webcam",
        Decimal("89.99"),
        "Professional 4K USB webcam with auto-focus and built-in microphone",
        "https://images.unsplash.com/photo-1598327105666-5b89351aff97?w=400&h=400&fit=crop",
    ),
)

SAMPLE_USERS: tuple[tuple[str, str], ...] = (
    ("User One", "user1@example.com"),
    ("User Two", "user2@example.com"),
)


async def reset_tables(session: AsyncSession) -> None:
    """Remove favorites, products, and users (children first)."""

    await session.execute(delete(FavoriteProduct))
    await session.execute(delete(Product))
    await session.execute(delete(User))


async def seed_catalog(
    session: AsyncSession,
    *,
    reset: bool = False,
    base_time: datetime | None = None,
) -> tuple[int, list[User]]:
    """Insert missing sample rows and return ``(products_added, users)``."""

    if reset:
        await reset_tables(session)

    existing_titles = set((await session.execute(select(Product.title))).scalars())
    start = base_time or datetime.now(timezone.utc)
    added = 0
    for offset, sample in enumerate(SAMPLE_PRODUCTS):
        if sample.title in existing_titles:
            continue
        session.add(
            Product(
                title=sample.title,
                price=sample.price,
                description=sample.description,
                image=sample.image,
                created_at=start + timedelta(seconds=offset),
            )
        )
        added += 1

    users: list[User] = []
    for name, email in SAMPLE_USERS:
        user = (
            await session.execute(select(User).where(User.email == email))
        ).scalar_one_or_none()
        if user is None:
            user = User(name=name, email=email)
            session.add(user)
        users.append(user)

    await session.commit()
    return added, users


def _print_summary(added: int, users: list[User]) -> None:
    console.print(f"[green]Added {added} products[/green]")
    table = Table(title="Demo users")
    table.add_column("Email")
    table.add_column("User ID")
    table.add_column("Bearer token")
    for user in users:
        table.add_row(user.email, user.id, issue_token(user.id))
    console.print(table)


async def main() -> int:
    """CLI entry point."""
    _validate_environment()

    parser = argparse.ArgumentParser(description="Seed the sample marketplace catalog")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete existing products, users, and favorites before seeding",
    )
    args = parser.parse_args()

    async with get_engine().begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    try:
        async with get_async_session_context() as session:
            added, users = await seed_catalog(session, reset=args.reset)
        await invalidate_catalog(await get_cache_client())
    finally:
        await close_redis()
        await dispose_engine()

    _print_summary(added, users)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
