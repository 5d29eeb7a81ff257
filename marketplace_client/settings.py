"""Configuration for marketplace API consumers."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_BASE_URL = "http://localhost:8000"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0
DEFAULT_SEARCH_DEBOUNCE_SECONDS = 0.5
DEFAULT_CLIENT_PAGE_SIZE = 6


class ClientSettings(BaseSettings):
    """Client tunables read from ``MARKETPLACE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MARKETPLACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        description="Root URL of the marketplace API.",
    )
    api_token: str | None = Field(
        default=None,
        description="Bearer token attached to favorite and profile requests.",
    )
    request_timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        gt=0,
        description="Per-request timeout applied by the HTTP client.",
    )
    search_debounce_seconds: float = Field(
        default=DEFAULT_SEARCH_DEBOUNCE_SECONDS,
        ge=0,
        description="Quiet period after the last keystroke before a search fetch.",
    )
    page_size: int = Field(
        default=DEFAULT_CLIENT_PAGE_SIZE,
        gt=0,
        description="Products requested per listing page.",
    )


@lru_cache(maxsize=1)
def get_client_settings() -> ClientSettings:
    """Return a cached :class:`ClientSettings` instance."""

    return ClientSettings()


__all__ = [
    "ClientSettings",
    "DEFAULT_API_BASE_URL",
    "DEFAULT_CLIENT_PAGE_SIZE",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "DEFAULT_SEARCH_DEBOUNCE_SECONDS",
    "get_client_settings",
]
