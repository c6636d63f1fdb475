"""Centralised application configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# src/delvewiki/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

StorageBackend = Literal["file", "memory", "database"]


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class StorageConfig(BaseModel):
    """Where page records live."""

    backend: StorageBackend = "file"
    data_dir: Path = Path("data")
    default_project: str = "main"


class DatabaseConfig(BaseModel):
    """Database connection configuration (``database`` backend only)."""

    url: str | None = None


class AnnotationConfig(BaseModel):
    """Inline comment anchoring and highlight markup."""

    context_chars: int = Field(default=30, ge=0)
    mark_tag: str = "mark"
    mark_class: str = "inline-comment"
    resolved_class: str = "inline-comment-resolved"

    @field_validator("mark_tag")
    @classmethod
    def _tag_is_a_name(cls, value: str) -> str:
        if not value.isalnum():
            msg = f"ANNOTATIONS__MARK_TAG must be a bare element name, got {value!r}"
            raise ValueError(msg)
        return value.lower()


class ConcurrencyConfig(BaseModel):
    """Per-page write serialisation."""

    lock_writes: bool = True


class AppConfig(BaseModel):
    """Application runtime configuration."""

    log_dir: Path = Path("logs")


class DevConfig(BaseModel):
    """Development and testing toggles."""

    database_echo: bool = False


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Application settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``STORAGE__DATA_DIR``, ``DATABASE__URL``, ``ANNOTATIONS__CONTEXT_CHARS``,
    etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    storage: StorageConfig = StorageConfig()
    database: DatabaseConfig = DatabaseConfig()
    annotations: AnnotationConfig = AnnotationConfig()
    concurrency: ConcurrencyConfig = ConcurrencyConfig()
    app: AppConfig = AppConfig()
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
    if env_file is not None:
        paths = env_file if isinstance(env_file, (list, tuple)) else (env_file,)
        loaded = [str(p) for p in paths if Path(str(p)).is_file()]
        if loaded:
            logger.info("Settings loaded .env from: %s", ", ".join(loaded))
        else:
            logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
