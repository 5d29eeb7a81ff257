"""Pytest configuration shared by the API and client suites."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from tests import _ensure_repo_on_path


def pytest_configure(config: pytest.Config) -> None:
    """Hook executed by pytest prior to running any tests."""

    _ensure_repo_on_path()


@pytest.fixture(autouse=True)
def _fresh_settings_cache() -> Iterator[None]:
    """Drop cached settings so environment tweaks in one test never leak."""

    from marketplace_api.settings import get_settings
    from marketplace_client.settings import get_client_settings

    get_settings.cache_clear()
    get_client_settings.cache_clear()
    yield
    get_settings.cache_clear()
    get_client_settings.cache_clear()
