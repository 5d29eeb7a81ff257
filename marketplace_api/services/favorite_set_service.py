"""Favorite Set Store: the authoritative per-user set of favorite products.

``add`` and ``remove`` are idempotent and each commits a single statement
before returning, so a response is only sent for work that is durable.
Concurrent add/remove calls for the same ``(user, product)`` pair converge on
whichever transaction commits last.  Connectivity failures surface as
:class:`~marketplace_api.errors.StoreUnavailable`; nothing here reports
success for an operation that did not happen.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar, runtime_checkable

from sqlalchemy.exc import DBAPIError, OperationalError

from marketplace_api.db.models import User
from marketplace_api.errors import NotFoundError, StoreUnavailable, ValidationError
from marketplace_api.schemas.favorites import FavoriteSet, UserProfile
from marketplace_api.services.identifiers import normalize_product_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STORE_ERRORS = (OperationalError, DBAPIError, TimeoutError)


@runtime_checkable
class FavoriteRepositoryProtocol(Protocol):
    """Persistence surface required by :class:`FavoriteSetService`."""

    async def add(self, *, user_id: str, product_id: str) -> None: ...

    async def remove(self, *, user_id: str, product_id: str) -> None: ...

    async def list_product_ids(self, *, user_id: str) -> list[str]: ...

    async def user_exists(self, user_id: str) -> bool: ...

    async def product_exists(self, product_id: str) -> bool: ...

    async def get_user(self, user_id: str) -> User | None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class FavoriteSetService:
    """Idempotent add/remove/get over a user's favorite product identifiers."""

    def __init__(self, repository: FavoriteRepositoryProtocol) -> None:
        self._repository = repository

    async def add(self, *, user_id: str, product_id: str) -> FavoriteSet:
        """Ensure ``product_id`` is in the user's set and return the new snapshot."""

        normalized = normalize_product_id(product_id)
        user = self._require_user_id(user_id)

        async def operation() -> None:
            await self._ensure_user(user)
            if not await self._repository.product_exists(normalized):
                raise NotFoundError(
                    "Product not found", detail=f"No product {normalized}"
                )
            await self._repository.add(user_id=user, product_id=normalized)

        snapshot = await self._mutate(operation, user_id=user, action="add")
        logger.debug("Favorite added user=%s product=%s", user, normalized)
        return snapshot

    async def remove(self, *, user_id: str, product_id: str) -> FavoriteSet:
        """Ensure ``product_id`` is absent from the user's set.

        The product itself need not exist any more, which lets clients drop a
        favorite whose product was deleted from the catalog.
        """

        normalized = normalize_product_id(product_id)
        user = self._require_user_id(user_id)

        async def operation() -> None:
            await self._ensure_user(user)
            await self._repository.remove(user_id=user, product_id=normalized)

        snapshot = await self._mutate(operation, user_id=user, action="remove")
        logger.debug("Favorite removed user=%s product=%s", user, normalized)
        return snapshot

    async def get(self, *, user_id: str) -> FavoriteSet:
        """Return a snapshot of the user's favorites; callers own the copy."""

        user = self._require_user_id(user_id)

        async def read() -> FavoriteSet:
            await self._ensure_user(user)
            return await self._snapshot(user)

        return await self._guard(read, action="get")

    async def get_profile(self, *, user_id: str) -> UserProfile:
        """Return the caller's profile together with their current favorites."""

        user_key = self._require_user_id(user_id)

        async def read() -> UserProfile:
            user = await self._repository.get_user(user_key)
            if user is None:
                raise NotFoundError("User not found", detail=f"No user {user_key}")
            favorites = await self._repository.list_product_ids(user_id=user_key)
            return UserProfile(
                user_id=user.id,
                name=user.name,
                email=user.email,
                favorites=list(favorites),
            )

        return await self._guard(read, action="get_profile")

    @staticmethod
    def _require_user_id(user_id: str) -> str:
        candidate = (user_id or "").strip()
        if not candidate:
            raise ValidationError("Missing user identifier")
        return candidate

    async def _ensure_user(self, user_id: str) -> None:
        if not await self._repository.user_exists(user_id):
            raise NotFoundError("User not found", detail=f"No user {user_id}")

    async def _snapshot(self, user_id: str) -> FavoriteSet:
        product_ids = await self._repository.list_product_ids(user_id=user_id)
        return FavoriteSet(user_id=user_id, favorites=list(product_ids))

    async def _mutate(
        self,
        operation: Callable[[], Awaitable[None]],
        *,
        user_id: str,
        action: str,
    ) -> FavoriteSet:
        async def apply() -> FavoriteSet:
            await operation()
            await self._repository.commit()
            return await self._snapshot(user_id)

        return await self._guard(apply, action=action)

    async def _guard(self, work: Callable[[], Awaitable[T]], *, action: str) -> T:
        try:
            return await work()
        except _STORE_ERRORS as exc:
            logger.warning("Favorite store %s failed: %s", action, exc)
            await self._safe_rollback()
            raise StoreUnavailable(detail=str(exc)) from exc
        except NotFoundError:
            await self._safe_rollback()
            raise

    async def _safe_rollback(self) -> None:
        try:
            await self._repository.rollback()
        except _STORE_ERRORS as exc:
            logger.debug("Rollback after store failure also failed: %s", exc)


__all__ = ["FavoriteRepositoryProtocol", "FavoriteSetService"]
