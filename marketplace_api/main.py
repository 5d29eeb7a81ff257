import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError

from marketplace_api.cache import close_redis
from marketplace_api.db.connection import dispose_engine, get_engine
from marketplace_api.db.models import Base
from marketplace_api.errors import MarketplaceError, StoreUnavailable, Unauthenticated
from marketplace_api.settings import AppSettings, get_settings

from .api import products, users
from .schemas.error import ErrorType, ValidationErrorDetail
from .utils.error_responses import (
    HTTP_UNPROCESSABLE,
    STORE_UNAVAILABLE_RETRY_AFTER,
    build_error_response,
    build_marketplace_error_response,
    build_validation_error_response,
)
from .utils.request_context import (
    clear_request_id,
    get_request_id,
    new_request_id,
    set_request_id,
)

logging.basicConfig(
    level=get_settings().log_level_numeric,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS: tuple[str, ...] = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8081",
)


def _validate_environment(active_settings: AppSettings | None = None) -> list[str]:
    """Log a warning for each unset optional setting and return the messages."""

    resolved = active_settings or get_settings()
    warnings = resolved.optional_config_warnings()
    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning("  - %s", warning)
        logger.warning("=" * 60)
    return warnings


def _sanitize_database_url(url: str) -> str:
    """Hide the password component of a database URL for logging."""

    scheme, separator, rest = url.partition("://")
    if not separator or "@" not in rest:
        return url
    credentials, host = rest.split("@", 1)
    user, has_password, _ = credentials.partition(":")
    if not has_password:
        return url
    return f"{scheme}://{user}:***@{host}"


def _allowed_origins(active_settings: AppSettings) -> list[str]:
    combined: list[str] = []
    for origin in (*DEFAULT_CORS_ORIGINS, *active_settings.cors_allow_origins):
        if origin not in combined:
            combined.append(origin)
    return combined


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the database preflight, create SQLite tables, and release resources."""

    active_settings = get_settings()
    _validate_environment(active_settings)

    logger.info("Marketplace API - Database Preflight Check")
    logger.info("Database Type: %s", active_settings.database_type.upper())
    logger.info(
        "Database URL: %s",
        _sanitize_database_url(active_settings.resolved_database_url),
    )

    if active_settings.database_type == "sqlite":
        async with get_engine().begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        logger.info("SQLite mode - tables ensured")
    else:
        logger.info("PostgreSQL mode - run scripts/init_db.py before first start")

    yield

    logger.info("Shutting down Marketplace API")
    await close_redis()
    await dispose_engine()


app = FastAPI(
    title="Marketplace API",
    version="0.1.0",
    description="Searchable product catalog with per-user favorites.",
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(get_settings()),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Tag each request with an id echoed back in ``X-Request-ID``."""

    request_id = new_request_id()
    token = set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        clear_request_id(token)
    response.headers["X-Request-ID"] = request_id
    return response


def _json_error(payload, *, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=payload.status_code,
        content=payload.model_dump(mode="json"),
        headers=headers,
    )


@app.exception_handler(MarketplaceError)
async def marketplace_exception_handler(request: Request, exc: MarketplaceError):
    """Render domain failures using the shared error payload."""

    error_response = build_marketplace_error_response(exc, path=str(request.url.path))
    log = logger.warning if error_response.status_code >= 500 else logger.info
    log(
        "%s for request %s to %s: %s",
        type(exc).__name__,
        get_request_id(),
        request.url.path,
        exc.message,
    )

    headers: dict[str, str] = {}
    if isinstance(exc, StoreUnavailable) and error_response.retry_after is not None:
        headers["Retry-After"] = str(error_response.retry_after)
    if isinstance(exc, Unauthenticated):
        headers["WWW-Authenticate"] = "Bearer"
    return _json_error(error_response, headers=headers or None)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors."""

    errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            value=error.get("input"),
        )
        for error in exc.errors()
    ]

    logger.info(
        "Validation error for request %s to %s: %s errors",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    return _json_error(
        build_validation_error_response(
            message="Request validation failed",
            detail=f"{len(errors)} validation error(s)",
            status_code=HTTP_UNPROCESSABLE,
            path=str(request.url.path),
            errors=errors,
        )
    )


@app.exception_handler(OperationalError)
@app.exception_handler(DBAPIError)
async def database_connection_exception_handler(request: Request, exc: Exception):
    """Handle database connectivity errors that escaped the service layer."""

    logger.error(
        "Database connection error for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        exc,
    )

    return _json_error(
        build_error_response(
            error_type=ErrorType.DATABASE_ERROR,
            message="Database connection failed",
            detail="Unable to connect to the database. Please try again later.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            path=str(request.url.path),
            retry_after=STORE_UNAVAILABLE_RETRY_AFTER,
        ),
        headers={"Retry-After": str(STORE_UNAVAILABLE_RETRY_AFTER)},
    )


@app.exception_handler(SQLAlchemyTimeoutError)
async def database_timeout_exception_handler(
    request: Request, exc: SQLAlchemyTimeoutError
):
    """Handle connection pool timeouts."""

    logger.error(
        "Database timeout error for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        exc,
    )

    return _json_error(
        build_error_response(
            error_type=ErrorType.TIMEOUT_ERROR,
            message="Database query timeout",
            detail="The database query took too long to complete. Please try again.",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            path=str(request.url.path),
            retry_after=3,
        )
    )


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    """Simple health endpoint for readiness checks."""
    return {"status": "ok"}


app.include_router(products.router, prefix="/products", tags=["products"])
app.include_router(users.router, prefix="/users", tags=["users"])
