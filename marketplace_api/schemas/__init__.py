"""Pydantic schemas for API requests and responses."""

from marketplace_api.schemas.favorites import FavoriteSet, UserProfile  # noqa: F401
from marketplace_api.schemas.product import (  # noqa: F401
    ListingRequest,
    ListingResult,
    ProductRead,
)
