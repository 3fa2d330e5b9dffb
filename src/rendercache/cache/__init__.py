"""Cache subsystem — salted addressing, group store, persistence, matching."""

from rendercache.cache.hooks import HookDispatcher
from rendercache.cache.keys import group_hash, name_hash, storage_key, stored_filename
from rendercache.cache.manager import RenderCache
from rendercache.cache.matcher import match_names

__all__ = [
    "RenderCache",
    "HookDispatcher",
    "group_hash",
    "name_hash",
    "storage_key",
    "stored_filename",
    "match_names",
]
