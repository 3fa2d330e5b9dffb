"""rendercache — filesystem cache for rendered artifacts."""

from rendercache.cache.hooks import HookDispatcher
from rendercache.cache.manager import RenderCache
from rendercache.types import CacheItem, CacheStats, HookEvent, HookResult, MatchMode

__all__ = [
    "RenderCache",
    "HookDispatcher",
    "CacheItem",
    "CacheStats",
    "HookEvent",
    "HookResult",
    "MatchMode",
]
