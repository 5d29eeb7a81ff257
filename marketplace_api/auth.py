"""Bearer-token identity used by the favorite routes.

Registration and login belong to a separate authentication service.  This
module only verifies the tokens that service hands out, which take the form
``<user_id>.<hex hmac-sha256(user_id, AUTH_SECRET)>``.  Catalog reads never
require a token.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.db.connection import get_db
from marketplace_api.db.repositories import FavoriteRepository
from marketplace_api.errors import Unauthenticated
from marketplace_api.settings import get_settings

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "bearer "


def _signature(user_id: str, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"), user_id.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def issue_token(user_id: str, *, secret: str | None = None) -> str:
    """Return a signed bearer token for ``user_id``."""

    if not user_id or "." in user_id:
        raise ValueError("user_id must be a non-empty string without '.'")
    key = secret if secret is not None else get_settings().auth_secret
    return f"{user_id}.{_signature(user_id, key)}"


def verify_token(token: str | None, *, secret: str | None = None) -> str:
    """Return the user id carried by ``token`` or raise :class:`Unauthenticated`."""

    if not token:
        raise Unauthenticated("Authentication required", detail="Missing bearer token")

    user_id, separator, signature = token.strip().rpartition(".")
    if not separator or not user_id or not signature:
        raise Unauthenticated("Invalid token", detail="Malformed bearer token")

    key = secret if secret is not None else get_settings().auth_secret
    if not hmac.compare_digest(signature, _signature(user_id, key)):
        raise Unauthenticated("Invalid token", detail="Token signature mismatch")
    return user_id


def extract_bearer_token(authorization: str | None) -> str | None:
    """Strip the ``Bearer`` scheme from an ``Authorization`` header value."""

    if authorization is None:
        return None
    value = authorization.strip()
    if value.lower().startswith(_BEARER_PREFIX):
        return value[len(_BEARER_PREFIX) :].strip() or None
    return None


async def get_current_user_id(
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_db),
) -> str:
    """Resolve the authenticated caller, rejecting identities the store does not know."""

    user_id = verify_token(extract_bearer_token(authorization))
    if not await FavoriteRepository(session).user_exists(user_id):
        logger.info("Rejected token for unknown user %s", user_id)
        raise Unauthenticated("caller not recognized", detail="User not found")
    return user_id


__all__ = [
    "extract_bearer_token",
    "get_current_user_id",
    "issue_token",
    "verify_token",
]
