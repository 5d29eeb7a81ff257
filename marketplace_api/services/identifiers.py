"""Product identifier validation shared by the catalog and favorite services."""

from __future__ import annotations

import uuid

from marketplace_api.errors import ValidationError


def normalize_product_id(value: str) -> str:
    """Return ``value`` as 32 lowercase hex characters.

    Hyphenated and upper-case UUID spellings are accepted.  Anything else is
    rejected with :class:`ValidationError` before any store access.
    """

    candidate = (value or "").strip()
    try:
        return uuid.UUID(candidate).hex
    except (ValueError, AttributeError, TypeError) as exc:
        raise ValidationError(
            "Malformed product identifier", detail=f"Invalid product id: {value!r}"
        ) from exc


__all__ = ["normalize_product_id"]
