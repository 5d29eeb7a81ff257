"""Catalog Query Engine: turns a listing request into a page of products."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from sqlalchemy.exc import DBAPIError, OperationalError

from marketplace_api.cache import CacheClient, catalog_listing_key
from marketplace_api.db.models import Product
from marketplace_api.db.repositories.catalog_filters import (
    compute_total_pages,
    normalize_search_term,
)
from marketplace_api.errors import NotFoundError, StoreUnavailable, ValidationError
from marketplace_api.schemas.product import ListingRequest, ListingResult, ProductRead
from marketplace_api.services.caching import CacheableService, cached
from marketplace_api.services.identifiers import normalize_product_id
from marketplace_api.settings import DEFAULT_MAX_PAGE_SIZE

logger = logging.getLogger(__name__)

_STORE_ERRORS = (OperationalError, DBAPIError, TimeoutError)


@runtime_checkable
class ProductRepositoryProtocol(Protocol):
    """Repository surface required by :class:`CatalogQueryService`."""

    async def search_products(
        self, *, term: str, page: int, page_size: int
    ) -> tuple[list[Product], int]:
        """Return one ordered page of title matches and the total match count."""

    async def get_product(self, product_id: str) -> Product | None:
        """Return a single product or ``None``."""


def _listing_cache_key(
    _self: "CatalogQueryService", request: ListingRequest
) -> str:
    return catalog_listing_key(
        normalize_search_term(request.search_term), request.page, request.page_size
    )


def _serialize_listing(result: ListingResult) -> dict:
    return result.model_dump(mode="json")


class CatalogQueryService(CacheableService):
    """Side-effect free listing queries, safe to call concurrently."""

    def __init__(
        self,
        repository: ProductRepositoryProtocol,
        *,
        cache: CacheClient | None = None,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
    ) -> None:
        super().__init__(cache=cache)
        self._repository = repository
        self._max_page_size = max_page_size

    async def list_products(self, request: ListingRequest) -> ListingResult:
        """Return the requested page of products whose title contains the term.

        A page past the last one is not an error: it yields no products while
        still reporting the true ``total`` and ``total_pages``.
        """

        if request.page_size > self._max_page_size:
            raise ValidationError(
                "Invalid listing request",
                detail=f"limit must not exceed {self._max_page_size}",
            )
        return await self._list_products(request)

    @cached(
        _listing_cache_key,
        serializer=_serialize_listing,
        deserializer=ListingResult.model_validate,
    )
    async def _list_products(self, request: ListingRequest) -> ListingResult:
        term = normalize_search_term(request.search_term)
        try:
            rows, total = await self._repository.search_products(
                term=term, page=request.page, page_size=request.page_size
            )
        except _STORE_ERRORS as exc:
            logger.warning("Catalog query failed: %s", exc)
            raise StoreUnavailable(
                "Catalog store is unavailable", detail=str(exc)
            ) from exc

        result = ListingResult(
            products=[ProductRead.model_validate(row) for row in rows],
            total=total,
            total_pages=compute_total_pages(total, request.page_size),
            current_page=request.page,
            page_size=request.page_size,
        )
        logger.debug(
            "Served listing term=%r page=%d size=%d (%d of %d matches)",
            term,
            request.page,
            request.page_size,
            len(result.products),
            total,
        )
        return result

    async def get_product(self, product_id: str) -> ProductRead:
        """Return one product, raising :class:`NotFoundError` when it is absent."""

        normalized = normalize_product_id(product_id)
        try:
            product = await self._repository.get_product(normalized)
        except _STORE_ERRORS as exc:
            logger.warning("Product lookup failed for %s: %s", normalized, exc)
            raise StoreUnavailable(
                "Catalog store is unavailable", detail=str(exc)
            ) from exc
        if product is None:
            raise NotFoundError("Product not found", detail=f"No product {normalized}")
        return ProductRead.model_validate(product)


def build_listing_request(
    *, search: str | None, page: int, limit: int
) -> ListingRequest:
    """Build a :class:`ListingRequest` from raw query parameters."""

    return ListingRequest.build(search_term=search, page=page, page_size=limit)


__all__ = [
    "CatalogQueryService",
    "ProductRepositoryProtocol",
    "build_listing_request",
]
