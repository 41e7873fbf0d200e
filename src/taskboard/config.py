"""Centralised application configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskboard.board.models import DEFAULT_LISTS, BoardList

logger = logging.getLogger(__name__)

# src/taskboard/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str | None = None


class AppConfig(BaseModel):
    """Application runtime configuration."""

    base_url: str = "http://localhost:8080"
    port: int = 8080
    storage_secret: SecretStr = SecretStr("dev-secret-change-me")
    log_dir: Path = Path("logs")


class ListSpec(BaseModel):
    """One fixed board list."""

    id: str
    title: str


def _default_list_specs() -> list[ListSpec]:
    return [ListSpec(id=lst.id, title=lst.title) for lst in DEFAULT_LISTS]


class BoardConfig(BaseModel):
    """Board layout.

    ``BOARD__LISTS`` takes a JSON array of ``{"id": ..., "title": ...}``.
    """

    lists: list[ListSpec] = Field(default_factory=_default_list_specs)
    search_min_chars: int = Field(default=1, ge=1)
    activity_panel_size: int = Field(default=5, ge=1)

    @model_validator(mode="after")
    def list_ids_unique(self) -> BoardConfig:
        ids = [spec.id for spec in self.lists]
        if not ids:
            msg = "BOARD__LISTS must define at least one list"
            raise ValueError(msg)
        if any(not list_id.strip() for list_id in ids):
            msg = "BOARD__LISTS ids must be non-empty"
            raise ValueError(msg)
        if len(set(ids)) != len(ids):
            msg = f"BOARD__LISTS ids must be unique, got {ids}"
            raise ValueError(msg)
        return self

    def board_lists(self) -> tuple[BoardList, ...]:
        return tuple(BoardList(id=spec.id, title=spec.title) for spec in self.lists)


class DevConfig(BaseModel):
    """Development and testing toggles."""

    database_echo: bool = False
    test_database_url: str | None = None
    reload: bool = True


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Application settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``DATABASE__URL``, ``APP__PORT``, ``BOARD__LISTS``, etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseConfig = DatabaseConfig()
    app: AppConfig = AppConfig()
    board: BoardConfig = BoardConfig()
    dev: DevConfig = DevConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)

    return settings
