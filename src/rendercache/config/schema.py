"""Pydantic model for the merged cache configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rendercache.config.defaults import (
    DEFAULT_BASE_URL,
    DEFAULT_CACHE_DISABLED,
    DEFAULT_CACHE_ROOT,
    DEFAULT_GROUP,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SALT,
    DEFAULT_TTL_SECONDS,
)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class CacheSettings(BaseModel):
    """Validated settings for a RenderCache instance."""

    model_config = ConfigDict(extra="ignore")

    cache_root: Path = DEFAULT_CACHE_ROOT
    base_url: str | None = DEFAULT_BASE_URL
    salt: str = DEFAULT_SALT
    default_group: str = Field(default=DEFAULT_GROUP, min_length=1)
    default_ttl: float = Field(default=DEFAULT_TTL_SECONDS, gt=0)
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    cache_disabled: bool = DEFAULT_CACHE_DISABLED
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level '{value}'; expected one of {sorted(_LOG_LEVELS)}")
        return level

    def resolved_base_url(self) -> str:
        """Public URL of the cache root; its file:// URI when unset."""
        if self.base_url:
            return self.base_url.rstrip("/")
        return self.cache_root.expanduser().resolve().as_uri()
