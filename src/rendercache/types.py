"""Shared Pydantic models for rendercache."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from rendercache.config.defaults import DEFAULT_GROUP

# ── Enums ──


class MatchMode(StrEnum):
    STRICT = "strict"
    GLOB = "glob"
    REGEX = "regex"


class GroupState(StrEnum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    ABSENT = "absent"


class HookEvent(StrEnum):
    PUT = "put"
    EXTEND = "extend"
    EXPIRE = "expire"
    PURGE = "purge"
    CLEAR_EXPIRED = "clear_expired"


class HookResult(StrEnum):
    CONTINUE = "continue"
    ABORT = "abort"


# ── Cache records ──


class CacheItem(BaseModel):
    """One cached artifact.

    ``stored_filename`` is derived from (group, name) and the source file's
    extension only, so a repeated put lands on the same path.
    """

    name: str
    group: str = DEFAULT_GROUP
    stored_filename: str
    expires_at: float
    keep: bool = False

    def is_alive(self, now: float) -> bool:
        """Time check used by ``has``: unexpired, or kept past expiry."""
        return self.expires_at > now or self.keep

    def is_expired(self, now: float) -> bool:
        """Time check used by ``expired``: ``keep`` does not suppress it."""
        return self.expires_at <= now


class CacheStats(BaseModel):
    """Aggregate cache statistics."""

    groups: int = 0
    items: int = 0
    alive_items: int = 0
    expired_items: int = 0
    size_bytes: int = 0
    group_names: list[str] = Field(default_factory=list)

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)
