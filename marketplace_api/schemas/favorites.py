"""Pydantic schemas for favorite set responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class FavoriteSet(BaseModel):
    """Snapshot of a user's favorite product identifiers.

    Each instance carries its own list, so mutating it never touches the
    store or another caller's snapshot.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    favorites: list[str] = Field(
        default_factory=list,
        description="Product identifiers, oldest first, each appearing once.",
    )

    def __contains__(self, product_id: object) -> bool:
        return product_id in self.favorites


class UserProfile(BaseModel):
    """Profile payload used by clients to seed their local favorite view."""

    user_id: str
    name: str
    email: str
    favorites: list[str] = Field(default_factory=list)


__all__ = ["FavoriteSet", "UserProfile"]
