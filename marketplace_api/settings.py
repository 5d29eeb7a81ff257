"""Centralized configuration management for the marketplace API."""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load a local .env file before the settings singleton is created so every
# importer of :mod:`marketplace_api.settings` observes the same environment.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_SQLITE_DATABASE_URL = "sqlite+aiosqlite:///./data/marketplace.db"
POSTGRES_ASYNC_PREFIX = "postgresql+psycopg://"
POSTGRES_SYNC_PREFIXES = ("postgres://", "postgresql://")
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_PAGE_SIZE = 10
DEFAULT_MAX_PAGE_SIZE = 100
DEFAULT_CATALOG_CACHE_TTL_SECONDS = 60
DEFAULT_AUTH_SECRET = "change-me"


def _normalize_origin(origin: str) -> str:
    """Return the origin stripped of whitespace and trailing slashes."""

    return origin.strip().rstrip("/")


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Besides the raw environment values the class exposes derived helpers such
    as the async-compatible database URL and the numeric log level so callers
    never repeat the parsing logic.
    """

    _explicit_redis_url: bool = PrivateAttr(default=False)
    _explicit_auth_secret: bool = PrivateAttr(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **values: object) -> None:
        """Capture explicit overrides prior to delegating to ``BaseSettings``."""

        normalized_keys = {str(key).lower() for key in values}
        super().__init__(**values)
        self._explicit_redis_url = "redis_url" in normalized_keys
        self._explicit_auth_secret = "auth_secret" in normalized_keys
        redis_env = os.getenv("REDIS_URL")
        if redis_env is not None and redis_env.strip():
            self._explicit_redis_url = True
        secret_env = os.getenv("AUTH_SECRET")
        if secret_env is not None and secret_env.strip():
            self._explicit_auth_secret = True

    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description=(
            "Full SQLAlchemy-compatible database URL. Postgres URLs supplied in"
            " sync format (postgres:// or postgresql://) are coerced into the"
            " async psycopg driver string at runtime."
        ),
    )
    use_sqlite: bool = Field(
        default=False,
        alias="USE_SQLITE",
        description="Force SQLite usage regardless of DATABASE_URL.",
    )
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description="Redis connection string consumed by the listing cache.",
    )
    catalog_cache_ttl_seconds: int = Field(
        default=DEFAULT_CATALOG_CACHE_TTL_SECONDS,
        alias="CATALOG_CACHE_TTL_SECONDS",
        ge=0,
        description="Lifetime of cached listing pages. Zero disables caching.",
    )
    cors_allow_origins_raw: str | None = Field(
        default=None,
        alias="CORS_ALLOW_ORIGINS",
        description="Comma-separated list of additional CORS origins.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )
    default_page_size: int = Field(
        default=DEFAULT_PAGE_SIZE,
        alias="DEFAULT_PAGE_SIZE",
        gt=0,
        description="Page size applied when a listing request omits ``limit``.",
    )
    max_page_size: int = Field(
        default=DEFAULT_MAX_PAGE_SIZE,
        alias="MAX_PAGE_SIZE",
        gt=0,
        description="Upper bound accepted for the ``limit`` query parameter.",
    )
    auth_secret: str = Field(
        default=DEFAULT_AUTH_SECRET,
        alias="AUTH_SECRET",
        description="HMAC secret used to sign and verify bearer tokens.",
    )

    @property
    def resolved_database_url(self) -> str:
        """Return the async-compatible database URL after applying fallbacks."""

        if self.use_sqlite or not self.database_url:
            return DEFAULT_SQLITE_DATABASE_URL

        url = self.database_url.strip()

        for prefix in POSTGRES_SYNC_PREFIXES:
            if url.startswith(prefix):
                return url.replace(prefix, POSTGRES_ASYNC_PREFIX, 1)

        if url.startswith(POSTGRES_ASYNC_PREFIX) or url.startswith("sqlite+aiosqlite://"):
            return url

        raise RuntimeError(
            f"Expected a PostgreSQL connection string or SQLite fallback, received: {url}"
        )

    @property
    def database_type(self) -> str:
        """Return ``sqlite`` when using SQLite otherwise ``postgresql``."""

        if self.resolved_database_url.startswith("sqlite"):
            return "sqlite"
        return "postgresql"

    @property
    def cors_allow_origins(self) -> list[str]:
        """Return normalised CORS origins supplied via environment variables."""

        if not self.cors_allow_origins_raw:
            return []

        origins = [
            _normalize_origin(origin)
            for origin in self.cors_allow_origins_raw.split(",")
            if origin.strip()
        ]
        return [origin for origin in origins if origin]

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if not self._explicit_redis_url and self.redis_url == DEFAULT_REDIS_URL:
            warnings.append(
                "REDIS_URL is not set - listing pages will not be cached "
                "(performance may be degraded)"
            )

        if not self._explicit_auth_secret and self.auth_secret == DEFAULT_AUTH_SECRET:
            warnings.append(
                "AUTH_SECRET is not set - bearer tokens are signed with the "
                "development default"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


settings = get_settings()

__all__ = [
    "AppSettings",
    "DEFAULT_AUTH_SECRET",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_PAGE_SIZE",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_REDIS_URL",
    "DEFAULT_SQLITE_DATABASE_URL",
    "POSTGRES_ASYNC_PREFIX",
    "POSTGRES_SYNC_PREFIXES",
    "get_settings",
    "settings",
]
