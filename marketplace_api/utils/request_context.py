"""Request-scoped identifiers shared by middleware, handlers, and logs.

Each inbound HTTP call is tagged with a UUID by the middleware in
:mod:`marketplace_api.main`.  The identifier lives in a ``ContextVar`` so
exception handlers and services running inside the same task can attach it
to log lines and error payloads without threading it through arguments.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token

__all__ = [
    "REQUEST_ID_CONTEXT",
    "clear_request_id",
    "get_request_id",
    "new_request_id",
    "set_request_id",
]

REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    """Return a fresh identifier suitable for the ``X-Request-ID`` header."""

    return str(uuid.uuid4())


def set_request_id(request_id: str) -> Token[str]:
    """Store ``request_id`` for the active task and return the reset token."""

    return REQUEST_ID_CONTEXT.set(request_id)


def get_request_id() -> str:
    """Return the active request identifier, or ``""`` outside a request."""

    return REQUEST_ID_CONTEXT.get()


def clear_request_id(token: Token[str] | None = None) -> None:
    """Restore the previous identifier (with ``token``) or blank it out."""

    if token is not None:
        REQUEST_ID_CONTEXT.reset(token)
    else:
        REQUEST_ID_CONTEXT.set("")
