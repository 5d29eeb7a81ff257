"""Set-semantics persistence for per-user favorite products.

Every mutation is a single statement keyed by ``(user_id, product_id)``:

* ``add`` is an ``INSERT ... ON CONFLICT DO NOTHING``.
* ``remove`` is a ``DELETE`` that affects zero or one row.

Neither reads the current set first, so two sessions mutating the same pair
cannot lose each other's update; whichever statement commits last decides the
final membership.
"""

from __future__ import annotations

from sqlalchemy import delete, exists, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.db.models import FavoriteProduct, Product, User, utcnow


class FavoriteRepository:
    """Encapsulates SQLAlchemy operations required by the favorite set store."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _dialect_name(self) -> str:
        bind = self._session.get_bind()
        return bind.dialect.name

    def _insert_ignoring_duplicates(self, *, user_id: str, product_id: str):
        values = {
            "user_id": user_id,
            "product_id": product_id,
            "created_at": utcnow(),
        }
        dialect = self._dialect_name()
        if dialect == "postgresql":
            statement = postgresql.insert(FavoriteProduct).values(**values)
        elif dialect == "sqlite":
            statement = sqlite.insert(FavoriteProduct).values(**values)
        else:
            raise RuntimeError(f"Unsupported database dialect for favorites: {dialect}")
        return statement.on_conflict_do_nothing(
            index_elements=[FavoriteProduct.user_id, FavoriteProduct.product_id]
        )

    async def add(self, *, user_id: str, product_id: str) -> None:
        """Insert the membership row unless it already exists."""

        await self._session.execute(
            self._insert_ignoring_duplicates(user_id=user_id, product_id=product_id)
        )

    async def remove(self, *, user_id: str, product_id: str) -> None:
        """Delete the membership row if present."""

        await self._session.execute(
            delete(FavoriteProduct).where(
                FavoriteProduct.user_id == user_id,
                FavoriteProduct.product_id == product_id,
            )
        )

    async def list_product_ids(self, *, user_id: str) -> list[str]:
        """Return the user's favorite product identifiers in the order they were added."""

        query = (
            select(FavoriteProduct.product_id)
            .where(FavoriteProduct.user_id == user_id)
            .order_by(FavoriteProduct.created_at.asc(), FavoriteProduct.product_id.asc())
        )
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def user_exists(self, user_id: str) -> bool:
        query = select(exists().where(User.id == user_id))
        return bool((await self._session.execute(query)).scalar())

    async def product_exists(self, product_id: str) -> bool:
        query = select(exists().where(Product.id == product_id))
        return bool((await self._session.execute(query)).scalar())

    async def get_user(self, user_id: str) -> User | None:
        return await self._session.get(User, user_id)

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()


__all__ = ["FavoriteRepository"]
