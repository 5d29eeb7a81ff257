"""Async HTTP client for the marketplace API.

Responses are decoded into the same pydantic models the server emits, and
every failure is translated back into the shared error taxonomy so callers
can react to ``StoreUnavailable`` or ``Unauthenticated`` without inspecting
status codes:

======================  ===========================
Outcome                 Raised
======================  ===========================
401                     ``Unauthenticated``
404                     ``NotFoundError``
400 / 422               ``ValidationError``
5xx, timeout, network   ``StoreUnavailable``
malformed 2xx body      ``StoreUnavailable``
======================  ===========================
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from marketplace_api.errors import (
    MarketplaceError,
    NotFoundError,
    StoreUnavailable,
    Unauthenticated,
    ValidationError,
)
from marketplace_api.schemas.favorites import FavoriteSet, UserProfile
from marketplace_api.schemas.product import ListingRequest, ListingResult, ProductRead
from marketplace_client.settings import ClientSettings, get_client_settings

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _error_fields(response: httpx.Response) -> tuple[str, str | None, int | None]:
    """Pull ``message``/``detail``/``retry_after`` from an error payload."""

    fallback = response.reason_phrase or f"HTTP {response.status_code}"
    try:
        payload = response.json()
    except ValueError:
        return fallback, response.text or None, None
    if not isinstance(payload, dict):
        return fallback, None, None

    message = payload.get("message")
    detail = payload.get("detail")
    if not isinstance(message, str):
        message = detail if isinstance(detail, str) else fallback
    retry_after = payload.get("retry_after")
    return (
        message,
        detail if isinstance(detail, str) else None,
        retry_after if isinstance(retry_after, int) else None,
    )


def translate_response_error(response: httpx.Response) -> MarketplaceError:
    """Map a non-2xx response onto the marketplace error taxonomy."""

    message, detail, retry_after = _error_fields(response)
    status_code = response.status_code
    if status_code == 401:
        return Unauthenticated(message, detail=detail)
    if status_code == 404:
        return NotFoundError(message, detail=detail)
    if status_code in (400, 422):
        return ValidationError(message, detail=detail)
    if status_code >= 500:
        return StoreUnavailable(message, detail=detail, retry_after=retry_after)
    return MarketplaceError(message, detail=detail)


class MarketplaceClient:
    """Thin wrapper over :class:`httpx.AsyncClient` speaking the marketplace API."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        resolved = settings or get_client_settings()
        self._token = token if token is not None else resolved.api_token
        self._http = httpx.AsyncClient(
            base_url=base_url or resolved.api_base_url,
            timeout=timeout if timeout is not None else resolved.request_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "MarketplaceClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        authenticated: bool = False,
    ) -> httpx.Response:
        headers = self._auth_headers() if authenticated else {}
        try:
            response = await self._http.request(
                method, url, params=params, headers=headers
            )
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out: %s", method, url, exc)
            raise StoreUnavailable("Request timed out", detail=str(exc)) from exc
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise StoreUnavailable("Marketplace API unreachable", detail=str(exc)) from exc

        if response.is_error:
            error = translate_response_error(response)
            logger.info(
                "%s %s returned %d (%s)",
                method,
                url,
                response.status_code,
                type(error).__name__,
            )
            raise error
        return response

    async def _fetch_model(
        self,
        model: type[ModelT],
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        authenticated: bool = False,
    ) -> ModelT:
        response = await self._request(
            method, url, params=params, authenticated=authenticated
        )
        try:
            return model.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            # A 2xx body that is not the expected payload (e.g. a proxy page)
            # means the operation cannot be confirmed.
            logger.warning(
                "%s %s returned a malformed %s payload: %s",
                method,
                url,
                model.__name__,
                exc,
            )
            raise StoreUnavailable(
                "Malformed response from marketplace API",
                detail=f"{method} {url} returned {response.status_code}: {exc}",
            ) from exc

    async def fetch_listing(self, request: ListingRequest) -> ListingResult:
        """Fetch one listing page; no identity is attached."""

        return await self._fetch_model(
            ListingResult,
            "GET",
            "/products",
            params={
                "search": request.search_term,
                "page": request.page,
                "limit": request.page_size,
            },
        )

    async def get_product(self, product_id: str) -> ProductRead:
        return await self._fetch_model(ProductRead, "GET", f"/products/{product_id}")

    async def add_favorite(self, product_id: str) -> FavoriteSet:
        return await self._fetch_model(
            FavoriteSet, "POST", f"/products/{product_id}/favorite", authenticated=True
        )

    async def remove_favorite(self, product_id: str) -> FavoriteSet:
        return await self._fetch_model(
            FavoriteSet, "DELETE", f"/products/{product_id}/favorite", authenticated=True
        )

    async def fetch_profile(self) -> UserProfile:
        """Return the caller's profile, used to seed the local favorite view."""

        return await self._fetch_model(
            UserProfile, "GET", "/users/me", authenticated=True
        )


__all__ = ["MarketplaceClient", "translate_response_error"]
