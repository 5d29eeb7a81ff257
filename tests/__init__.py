"""Test suite package configuration.

Puts the repository root on ``sys.path`` so ``marketplace_api``,
``marketplace_client`` and ``scripts`` import from the working tree even when
pytest is launched through its console script.
"""

from __future__ import annotations

import sys
from pathlib import Path

_REPO_ROOT: Path = Path(__file__).resolve().parent.parent


def _ensure_repo_on_path() -> None:
    """Insert the repository root at the front of ``sys.path`` when missing."""

    repo_root_str: str = str(_REPO_ROOT)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_on_path()
