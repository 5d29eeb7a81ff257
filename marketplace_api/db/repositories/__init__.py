"""Repository package for the catalog and favorite set store."""

from marketplace_api.db.repositories.catalog_filters import (
    compute_total_pages,
    normalize_search_term,
    page_offset,
)
from marketplace_api.db.repositories.favorite_repository import FavoriteRepository
from marketplace_api.db.repositories.product_repository import ProductRepository

__all__ = [
    "FavoriteRepository",
    "ProductRepository",
    "compute_total_pages",
    "normalize_search_term",
    "page_offset",
]
