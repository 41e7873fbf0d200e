"""Database bootstrap and schema management for Taskboard.

Key principles:
- Alembic is the ONLY way to create/modify schema
- All models must be imported before schema operations
- Fail fast if schema is invalid
"""

from __future__ import annotations

import os
import re
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import psycopg
import psycopg.sql
from sqlalchemy import inspect
from sqlmodel import SQLModel

from taskboard.config import get_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

_DB_NAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")


def _split_database_url(url: str) -> tuple[str, str]:
    """Return (maintenance_url, db_name) for a PostgreSQL URL.

    The maintenance URL points at the ``postgres`` database with the
    SQLAlchemy driver suffix stripped, so sync psycopg accepts it.
    """
    base, _, query = url.partition("?")
    server, _, db_name = base.rpartition("/")
    maintenance_url = f"{server}/postgres".replace(
        "postgresql+asyncpg://", "postgresql://"
    )
    if query:
        maintenance_url += f"?{query}"
    return maintenance_url, db_name


def ensure_database_exists(url: str | None) -> bool:
    """Create the target database if it doesn't exist.

    CREATE DATABASE cannot run inside a transaction, so this connects to the
    maintenance database with autocommit.

    Returns:
        True if a new database was created, False otherwise.

    Raises:
        ValueError: If the database name contains invalid characters.
    """
    if not url or "/" not in url.split("?")[0]:
        return False
    maintenance_url, db_name = _split_database_url(url)
    if not db_name:
        return False
    if not _DB_NAME_RE.match(db_name):
        msg = f"Invalid database name: {db_name!r}"
        raise ValueError(msg)

    with psycopg.connect(maintenance_url, autocommit=True) as conn:
        row = conn.execute(
            "SELECT 1 FROM pg_database WHERE datname = %s", (db_name,)
        ).fetchone()
        if row is not None:
            return False
        conn.execute(
            psycopg.sql.SQL("CREATE DATABASE {}").format(
                psycopg.sql.Identifier(db_name)
            )
        )
    return True


def is_db_configured() -> bool:
    """Return True if DATABASE__URL is set."""
    return bool(get_settings().database.url)


def run_alembic_upgrade() -> None:
    """Upgrade the schema to head, creating the database first if needed.

    Never use SQLModel.metadata.create_all() outside of Alembic migrations.

    Raises:
        RuntimeError: If DATABASE__URL is not configured or migrations fail.
    """
    if not is_db_configured():
        msg = "DATABASE__URL not configured, cannot run migrations"
        raise RuntimeError(msg)

    ensure_database_exists(get_settings().database.url)

    # alembic.ini lives at the project root
    project_root = Path(__file__).parent.parent.parent.parent
    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        capture_output=True,
        encoding="utf-8",
        check=False,
        cwd=project_root,
        env=dict(os.environ),
    )
    if result.returncode != 0:
        msg = (
            f"Alembic migrations failed:\n"
            f"stdout: {result.stdout}\n"
            f"stderr: {result.stderr}"
        )
        raise RuntimeError(msg)


def get_expected_tables() -> set[str]:
    """Return the table names registered by the Taskboard models."""
    import taskboard.db.models  # noqa: F401, PLC0415

    return set(SQLModel.metadata.tables.keys())


async def verify_schema(engine: AsyncEngine | None) -> None:
    """Fail fast at startup if any model table is missing.

    Raises:
        RuntimeError: If engine is None or tables are missing.
    """
    if engine is None:
        raise RuntimeError("Database engine is not initialized")

    async with engine.begin() as connection:
        existing_tables = await connection.run_sync(
            lambda sync_conn: set(inspect(sync_conn).get_table_names())
        )

    missing_tables = get_expected_tables() - existing_tables
    if missing_tables:
        missing = ", ".join(sorted(missing_tables))
        masked_url = mask_password(get_settings().database.url or "<unset>")
        raise RuntimeError(
            f"Database schema is missing required tables: {missing}. "
            f"DATABASE__URL={masked_url}. "
            f"Run 'alembic upgrade head' to create tables."
        )


def mask_password(url: str) -> str:
    """Mask the password in a database URL for logging."""
    protocol, sep, rest = url.partition("://")
    if not sep or "@" not in rest:
        return url
    creds, host_part = rest.rsplit("@", 1)
    user, has_password, _ = creds.partition(":")
    if not has_password:
        return url
    return f"{protocol}://{user}:***@{host_part}"
