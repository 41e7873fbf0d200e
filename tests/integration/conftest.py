"""Integration test configuration.

These tests need a running PostgreSQL instance named by
DEV__TEST_DATABASE_URL. The schema is migrated once per session.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

from taskboard.config import get_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Generator


@pytest.fixture(scope="session")
def db_schema_guard() -> Generator[None]:
    """Point DATABASE__URL at the test database and migrate it to head."""
    test_url = get_settings().dev.test_database_url
    if not test_url:
        pytest.skip("DEV__TEST_DATABASE_URL not configured")

    from taskboard.db import run_alembic_upgrade

    os.environ["DATABASE__URL"] = test_url
    get_settings.cache_clear()
    try:
        run_alembic_upgrade()
    except RuntimeError as e:
        pytest.fail(str(e))

    yield


@pytest_asyncio.fixture(autouse=True)
async def reset_db_engine_per_test(
    db_schema_guard: None,  # noqa: ARG001
) -> AsyncGenerator[None]:
    """Dispose the shared engine after each test.

    Pooled connections bind to the event loop that opened them, and every
    test gets a fresh loop.
    """
    yield

    from taskboard.db.engine import _state, close_db

    if _state.engine is not None:
        await close_db()
