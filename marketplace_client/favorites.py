"""Optimistic favorite toggling reconciled against the favorite store.

The coordinator never keeps a per-product "is favorited" flag.  It keeps the
set the server last confirmed plus at most one :class:`PendingMutation` per
product, and derives what the UI shows from the two:

* a product with a pending mutation shows the mutation's target state;
* every other product shows whether it is in the confirmed set.

Resolving a mutation only ever touches the product it was issued for, so a
slow response for one product cannot roll back another product's state.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol

from marketplace_api.errors import MarketplaceError
from marketplace_api.schemas.product import ProductRead

logger = logging.getLogger(__name__)

FailureNotice = Callable[[str, MarketplaceError], None]
ChangeListener = Callable[[str], None]


class ToggleOutcome(str, Enum):
    """How a single :meth:`FavoriteCoordinator.toggle` call ended."""

    REJECTED = "rejected"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


@dataclass(frozen=True, slots=True)
class PendingMutation:
    """An issued add/remove that the server has not acknowledged yet."""

    product_id: str
    target: bool
    request_id: int


@dataclass(frozen=True, slots=True)
class AnnotatedProduct:
    """A listing item decorated with the caller's favorite state."""

    product: ProductRead
    is_favorite: bool
    is_pending: bool


class FavoriteGateway(Protocol):
    async def add_favorite(self, product_id: str) -> Any: ...

    async def remove_favorite(self, product_id: str) -> Any: ...


class FavoriteCoordinator:
    """Per-session favorite view with reject-while-pending toggles."""

    def __init__(
        self,
        gateway: FavoriteGateway,
        *,
        on_failure: FailureNotice | None = None,
    ) -> None:
        self._gateway = gateway
        self._on_failure = on_failure
        self._confirmed: set[str] = set()
        self._pending: dict[str, PendingMutation] = {}
        self._request_ids = itertools.count(1)
        self._listeners: list[ChangeListener] = []

    def seed(self, product_ids: Iterable[str]) -> None:
        """Replace the confirmed set, typically from the session's profile fetch.

        Outstanding mutations keep overriding their products until they resolve.
        """

        previous = self._confirmed
        self._confirmed = set(product_ids)
        for product_id in previous ^ self._confirmed:
            self._notify(product_id)

    def is_favorited(self, product_id: str) -> bool:
        pending = self._pending.get(product_id)
        if pending is not None:
            return pending.target
        return product_id in self._confirmed

    def is_pending(self, product_id: str) -> bool:
        return product_id in self._pending

    def favorites(self) -> frozenset[str]:
        """Return the displayed favorite set (confirmed plus pending overrides)."""

        displayed = set(self._confirmed)
        for product_id, mutation in self._pending.items():
            if mutation.target:
                displayed.add(product_id)
            else:
                displayed.discard(product_id)
        return frozenset(displayed)

    def confirmed(self) -> frozenset[str]:
        return frozenset(self._confirmed)

    def pending(self) -> Mapping[str, PendingMutation]:
        return MappingProxyType(dict(self._pending))

    def annotate(self, products: Iterable[ProductRead]) -> list[AnnotatedProduct]:
        return [
            AnnotatedProduct(
                product=product,
                is_favorite=self.is_favorited(product.id),
                is_pending=self.is_pending(product.id),
            )
            for product in products
        ]

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """Register ``listener`` for display changes; returns an unsubscribe hook."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def toggle(self, product_id: str) -> ToggleOutcome:
        """Flip the favorite state of ``product_id`` optimistically.

        Everything up to the store call runs before the first suspension
        point, so the flipped state is visible as soon as this coroutine is
        first scheduled.  A failure restores the last confirmed state, clears
        the pending entry, and reports through ``on_failure``; it is never
        retried automatically.
        """

        if product_id in self._pending:
            logger.debug("Rejected toggle for %s: mutation already pending", product_id)
            return ToggleOutcome.REJECTED

        mutation = PendingMutation(
            product_id=product_id,
            target=not self.is_favorited(product_id),
            request_id=next(self._request_ids),
        )
        self._pending[product_id] = mutation
        logger.debug(
            "Accepted toggle #%d for %s -> %s",
            mutation.request_id,
            product_id,
            "favorited" if mutation.target else "unfavorited",
        )
        self._notify(product_id)

        try:
            if mutation.target:
                await self._gateway.add_favorite(product_id)
            else:
                await self._gateway.remove_favorite(product_id)
        except MarketplaceError as exc:
            self._resolve(mutation, confirmed=False)
            logger.info(
                "Reverted toggle #%d for %s: %s", mutation.request_id, product_id, exc
            )
            if self._on_failure is not None:
                self._on_failure(product_id, exc)
            return ToggleOutcome.REVERTED
        except BaseException:
            self._resolve(mutation, confirmed=False)
            raise

        self._resolve(mutation, confirmed=True)
        return ToggleOutcome.CONFIRMED

    def _resolve(self, mutation: PendingMutation, *, confirmed: bool) -> None:
        if self._pending.get(mutation.product_id) is mutation:
            del self._pending[mutation.product_id]
        if confirmed:
            if mutation.target:
                self._confirmed.add(mutation.product_id)
            else:
                self._confirmed.discard(mutation.product_id)
        self._notify(mutation.product_id)

    def _notify(self, product_id: str) -> None:
        for listener in list(self._listeners):
            listener(product_id)


__all__ = [
    "AnnotatedProduct",
    "FavoriteCoordinator",
    "FavoriteGateway",
    "PendingMutation",
    "ToggleOutcome",
]
