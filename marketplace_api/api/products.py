"""Catalog listing and favorite mutation routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from marketplace_api.auth import get_current_user_id
from marketplace_api.schemas.favorites import FavoriteSet
from marketplace_api.schemas.product import ListingResult, ProductRead
from marketplace_api.services.catalog_query_service import (
    CatalogQueryService,
    build_listing_request,
)
from marketplace_api.services.dependencies import (
    get_catalog_query_service,
    get_favorite_set_service,
)
from marketplace_api.services.favorite_set_service import FavoriteSetService
from marketplace_api.settings import get_settings

router = APIRouter()


@router.get("/", response_model=ListingResult)
@router.get("", response_model=ListingResult, include_in_schema=False)
async def list_products(
    search: str = Query("", description="Case-insensitive title substring"),
    page: int = Query(1, ge=1, description="One-based page number"),
    limit: int | None = Query(
        None, ge=1, description="Products per page (defaults to DEFAULT_PAGE_SIZE)"
    ),
    service: CatalogQueryService = Depends(get_catalog_query_service),
) -> ListingResult:
    """Return one page of the catalog filtered by ``search``.

    Pages past the end are valid and come back with an empty ``products`` list.
    """

    request = build_listing_request(
        search=search,
        page=page,
        limit=limit if limit is not None else get_settings().default_page_size,
    )
    return await service.list_products(request)


@router.get("/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: str,
    service: CatalogQueryService = Depends(get_catalog_query_service),
) -> ProductRead:
    """Return a single product."""
    return await service.get_product(product_id)


@router.post("/{product_id}/favorite", response_model=FavoriteSet)
async def add_favorite(
    product_id: str,
    user_id: str = Depends(get_current_user_id),
    service: FavoriteSetService = Depends(get_favorite_set_service),
) -> FavoriteSet:
    """Add the product to the caller's favorites; repeating the call is harmless."""

    return await service.add(user_id=user_id, product_id=product_id)


@router.delete("/{product_id}/favorite", response_model=FavoriteSet)
async def remove_favorite(
    product_id: str,
    user_id: str = Depends(get_current_user_id),
    service: FavoriteSetService = Depends(get_favorite_set_service),
) -> FavoriteSet:
    """Remove the product from the caller's favorites; absent ids are a no-op."""

    return await service.remove(user_id=user_id, product_id=product_id)
