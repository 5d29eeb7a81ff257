"""Typed failures shared by the catalog, favorites, and client layers.

The module deliberately imports nothing beyond the standard library so the
client package can reuse the same taxonomy when translating HTTP responses
back into exceptions.
"""

from __future__ import annotations

__all__ = [
    "MarketplaceError",
    "NotFoundError",
    "StoreUnavailable",
    "Unauthenticated",
    "ValidationError",
]


class MarketplaceError(Exception):
    """Base class for every failure raised by the marketplace core."""

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(MarketplaceError):
    """Malformed input rejected before any store access."""


class NotFoundError(MarketplaceError):
    """A referenced product or user does not exist."""


class StoreUnavailable(MarketplaceError):
    """Transient infrastructure failure; the operation did not happen."""

    def __init__(
        self,
        message: str = "Favorite store is unavailable",
        *,
        detail: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.retry_after = retry_after


class Unauthenticated(MarketplaceError):
    """Caller identity is missing, invalid, or not recognized."""
