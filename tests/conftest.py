"""Shared fixtures for the confstate test suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from confstate.core.settings import load_settings


@pytest.fixture(autouse=True)  # type: ignore[misc]
def _fresh_settings() -> Iterator[None]:
    """Rebuild cached settings after each test so env tweaks never leak."""
    yield
    load_settings.cache_clear()


@pytest.fixture  # type: ignore[misc]
def sample_tree() -> dict[str, object]:
    """A small nested configuration resembling a real settings document."""
    return {
        "theme": {"dark": False, "accent": "#3366ff"},
        "search": {"minChars": 2, "fields": ["title", "tags"]},
        "display": {"labels": {"show": True, "max": 40}},
    }
