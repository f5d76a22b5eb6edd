"""Pytest configuration and fixtures."""

from __future__ import annotations

import os

import pytest

from transit_feed.services.gtfs_static.errors import ErrorPolicy


@pytest.fixture(autouse=True)
def _clean_gtfs_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep GTFS_* variables of the calling shell out of the tests."""
    for name in list(os.environ):
        if name.upper().startswith("GTFS_"):
            monkeypatch.delenv(name)


@pytest.fixture
def strict() -> ErrorPolicy:
    return ErrorPolicy()


@pytest.fixture
def lenient() -> ErrorPolicy:
    """Policy substituting defaults wherever a field has one."""
    return ErrorPolicy(use_default=True)
