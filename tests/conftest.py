"""Shared pytest fixtures for Taskboard tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv

from taskboard.config import get_settings

if TYPE_CHECKING:
    from collections.abc import Iterator

load_dotenv()


@pytest.fixture
def fresh_settings() -> Iterator[None]:
    """Clear the cached Settings before and after a test that edits env vars."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
