"""SQLAlchemy-backed catalog queries."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.db.models import Product
from marketplace_api.db.repositories.catalog_filters import page_offset


class ProductRepository:
    """Read-side access to the ``products`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def search_products(
        self,
        *,
        term: str,
        page: int,
        page_size: int,
    ) -> tuple[list[Product], int]:
        """Return one page of title matches plus the total match count.

        Matches are ordered by ``(created_at, id)`` so consecutive pages of the
        same query never skip or repeat rows, even while new products are being
        inserted.  Both statements run on the same session, and therefore the
        same transaction.
        """

        conditions = []
        if term:
            conditions.append(Product.title.icontains(term, autoescape=True))

        count_query = select(func.count()).select_from(Product).where(*conditions)
        total = int((await self._session.execute(count_query)).scalar_one())

        # Past-the-end pages are answered from the count alone; the offset can
        # exceed what the database accepts as an integer.
        offset = page_offset(page, page_size)
        if offset >= total:
            return [], total

        page_query = (
            select(Product)
            .where(*conditions)
            .order_by(Product.created_at.asc(), Product.id.asc())
            .offset(offset)
            .limit(page_size)
        )
        result = await self._session.execute(page_query)
        return list(result.scalars().all()), total

    async def get_product(self, product_id: str) -> Product | None:
        """Return a single product by identifier."""

        return await self._session.get(Product, product_id)


__all__ = ["ProductRepository"]
