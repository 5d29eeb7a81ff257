"""Client-side favorite reconciliation and listing synchronization."""

from marketplace_client.api_client import MarketplaceClient
from marketplace_client.favorites import (
    AnnotatedProduct,
    FavoriteCoordinator,
    PendingMutation,
    ToggleOutcome,
)
from marketplace_client.listing import ListingState, ListingSynchronizer
from marketplace_client.settings import ClientSettings, get_client_settings

__all__ = [
    "AnnotatedProduct",
    "ClientSettings",
    "FavoriteCoordinator",
    "ListingState",
    "ListingSynchronizer",
    "MarketplaceClient",
    "PendingMutation",
    "ToggleOutcome",
    "get_client_settings",
]
