"""Pagination helpers shared by the catalog repository and query service."""

from __future__ import annotations

import math


def normalize_search_term(term: str | None) -> str:
    """Return the trimmed search term; ``None`` collapses to the empty string."""

    return (term or "").strip()


def compute_total_pages(total: int, page_size: int) -> int:
    """Return ``ceil(total / page_size)``, which is ``0`` for an empty match set."""

    if total <= 0:
        return 0
    return math.ceil(total / page_size)


def page_offset(page: int, page_size: int) -> int:
    """Return the zero-based index of the first entry on ``page``."""

    return (page - 1) * page_size


__all__ = [
    "compute_total_pages",
    "normalize_search_term",
    "page_offset",
]
