"""FastAPI dependency wiring for marketplace services.

Factories here only resolve infrastructure (database session, cache client,
settings) and hand it to the service constructors, keeping the service
modules free of web-layer imports.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.cache import CacheClient, get_cache_client
from marketplace_api.db.connection import get_db
from marketplace_api.db.repositories import FavoriteRepository, ProductRepository
from marketplace_api.services.catalog_query_service import CatalogQueryService
from marketplace_api.services.favorite_set_service import FavoriteSetService
from marketplace_api.settings import get_settings


def get_catalog_query_service(
    session: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache_client),
) -> CatalogQueryService:
    """Provide a :class:`CatalogQueryService` bound to the request session."""

    return CatalogQueryService(
        ProductRepository(session),
        cache=cache,
        max_page_size=get_settings().max_page_size,
    )


def get_favorite_set_service(
    session: AsyncSession = Depends(get_db),
) -> FavoriteSetService:
    """Provide a :class:`FavoriteSetService`; favorites bypass the cache."""

    return FavoriteSetService(FavoriteRepository(session))


__all__ = ["get_catalog_query_service", "get_favorite_set_service"]
