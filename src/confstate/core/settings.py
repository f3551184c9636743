"""Centralized engine configuration using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files at the working directory: .env, .env.local, .env.dev/.env.test/.env.prod

The values here are *defaults* for :class:`~confstate.core.state.store.StateStore`.
Anything passed explicitly to the store constructor wins over the environment.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Typed engine configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `CONFSTATE_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    max_history : int
        Upper bound on retained history entries; maps from `CONFSTATE_MAX_HISTORY`.
    validate_on_change : bool
        Run the attached validator after every accepted write;
        maps from `CONFSTATE_VALIDATE_ON_CHANGE`.
    notify_only_on_change : bool
        Skip listener notification for writes that change nothing;
        maps from `CONFSTATE_NOTIFY_ONLY_ON_CHANGE`.
    """

    environment: EnvName = Field(default="dev", alias="CONFSTATE_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    max_history: int = Field(default=20, ge=1, alias="CONFSTATE_MAX_HISTORY")
    validate_on_change: bool = Field(default=True, alias="CONFSTATE_VALIDATE_ON_CHANGE")
    notify_only_on_change: bool = Field(default=True, alias="CONFSTATE_NOTIFY_ONLY_ON_CHANGE")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    @property
    def is_prod(self) -> bool:
        """Return True if running in the production environment."""
        return self.environment == "prod"

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    We keep this behind an LRU cache so tests can force a rebuild via
    `load_settings.cache_clear()` after mutating `os.environ`.
    """
    os.environ.setdefault("CONFSTATE_ENV", "dev")
    return Settings()


# Export a ready-to-use singleton (import-time read of env / .env files).
settings: Settings = load_settings()


def get_logger(name: str = "confstate") -> logging.Logger:
    """Return a process-global logger configured to the current `LOG_LEVEL`."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger


__all__ = ["Settings", "get_logger", "load_settings", "settings"]
