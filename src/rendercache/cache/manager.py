"""Render cache facade — lazy group loading, hooks, write-through."""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Callable, Iterator
from pathlib import Path

from rendercache.cache.directory import prepare_cache_root
from rendercache.cache.hooks import HookDispatcher
from rendercache.cache.matcher import match_names, parse_mode
from rendercache.cache.persistence import GroupPersistence
from rendercache.cache.store import CacheStore
from rendercache.config.defaults import (
    DEFAULT_GROUP,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_TTL_SECONDS,
)
from rendercache.config.schema import CacheSettings
from rendercache.types import CacheItem, CacheStats, GroupState, HookEvent, MatchMode

logger = logging.getLogger(__name__)


class RenderCache:
    """Filesystem cache for rendered artifacts, addressed by (group, name).

    Each group moves through UNLOADED -> LOADED -> ABSENT. The first access
    loads the group's metadata file and sweeps expired items; a group with
    no live items left is dropped (ABSENT) and its metadata file removed on
    the next save. Mutating calls hold the group's file lock from load to
    save.

    When the cache root is unusable the instance is disabled and every
    operation returns an empty result without raising.
    """

    def __init__(
        self,
        cache_root: str | Path,
        salt: str = "",
        base_url: str | None = None,
        default_group: str = DEFAULT_GROUP,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        hooks: HookDispatcher | None = None,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._root = Path(cache_root).expanduser()
        self._enabled = enabled and prepare_cache_root(self._root)
        self._base_url = (base_url or self._root.resolve().as_uri()).rstrip("/")
        self._default_group = default_group
        self._default_ttl = default_ttl
        self._hooks = hooks or HookDispatcher()
        self._store = CacheStore(self._root, salt=salt, clock=clock)
        self._persistence = GroupPersistence(self._store, lock_timeout=lock_timeout)
        self._states: dict[str, GroupState] = {}

        if not salt:
            logger.warning("No salt configured; cached filenames are guessable")

    @classmethod
    def from_settings(
        cls,
        settings: CacheSettings,
        hooks: HookDispatcher | None = None,
    ) -> RenderCache:
        return cls(
            cache_root=settings.cache_root,
            salt=settings.salt,
            base_url=settings.resolved_base_url(),
            default_group=settings.default_group,
            default_ttl=settings.default_ttl,
            lock_timeout=settings.lock_timeout,
            hooks=hooks,
            enabled=not settings.cache_disabled,
        )

    @classmethod
    def from_config(cls, hooks: HookDispatcher | None = None, **overrides) -> RenderCache:
        """Build from the config hierarchy (defaults, YAML, env, overrides)."""
        from rendercache.config.hierarchy import load_settings

        return cls.from_settings(load_settings(**overrides), hooks=hooks)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def root(self) -> Path:
        return self._root

    @property
    def hooks(self) -> HookDispatcher:
        return self._hooks

    def now(self) -> float:
        return self._store.now()

    def group_state(self, group: str | None = None) -> GroupState:
        return self._states.get(self._group(group), GroupState.UNLOADED)

    # ── Mutating operations ──

    def put(
        self,
        name: str,
        source: str | Path,
        ttl: float | None = None,
        keep: bool = False,
        group: str | None = None,
    ) -> bool:
        """Copy ``source`` into the cache under ``name``.

        Returns True if the artifact was stored; False if the cache is
        disabled, the source does not exist, the item would be stored already
        expired (``ttl <= 0`` without ``keep``), or a hook vetoed the put.
        """
        if not self._enabled:
            return False
        group = self._group(group)
        ttl = self._default_ttl if ttl is None else ttl
        source = Path(source)

        if not source.is_file():
            logger.warning("Cannot cache '%s': source file %s does not exist", name, source)
            return False
        if ttl <= 0 and not keep:
            logger.warning("Not caching '%s': ttl %s is already expired", name, ttl)
            return False
        payload = {"name": name, "source": source, "ttl": ttl, "keep": keep, "group": group}
        if not self._hooks.before(HookEvent.PUT, **payload):
            return False

        with self._mutating(group):
            self._store.put(group, name, source, ttl, keep=keep)

        self._hooks.after(HookEvent.PUT, **payload)
        return True

    def extend(self, name: str, seconds: float, group: str | None = None) -> bool:
        """Add ``seconds`` to an item's expiry. Returns whether it existed."""
        if not self._enabled:
            return False
        group = self._group(group)
        payload = {"name": name, "seconds": seconds, "group": group}
        if not self._hooks.before(HookEvent.EXTEND, **payload):
            return False

        with self._mutating(group):
            extended = self._store.extend(group, name, seconds)

        self._hooks.after(HookEvent.EXTEND, **payload)
        return extended

    def expire(
        self,
        pattern: str,
        mode: MatchMode | str = MatchMode.STRICT,
        group: str | None = None,
    ) -> list[str]:
        """Remove every item whose name matches ``pattern``.

        Returns the names actually removed. Expiring an absent name is a
        no-op.
        """
        if not self._enabled:
            return []
        group = self._group(group)
        mode = parse_mode(mode)

        with self._mutating(group):
            targets = match_names(pattern, self._store.names(group), mode)
            removed = [name for name in targets if self._expire_item(group, name)]

        if removed:
            logger.info("Expired %d item(s) from group '%s'", len(removed), group)
        return removed

    def purge(self) -> None:
        """Expire every item in every registered group."""
        if not self._enabled:
            return
        if not self._hooks.before(HookEvent.PURGE):
            return

        for group in self._persistence.load_registry().values():
            with self._mutating(group):
                for name in self._store.names(group):
                    self._expire_item(group, name)

        logger.info("Purged render cache at %s", self._root)
        self._hooks.after(HookEvent.PURGE)

    def clear_expired(self, group: str | None = None) -> list[str]:
        """Remove the group's items that are no longer present."""
        if not self._enabled:
            return []
        group = self._group(group)
        if not self._hooks.before(HookEvent.CLEAR_EXPIRED, group=group):
            return []

        with self._mutating(group) as swept:
            removed = swept + self._store.clear_expired_in_group(group)

        self._hooks.after(HookEvent.CLEAR_EXPIRED, group=group)
        return removed

    # ── Queries ──

    def has(self, name: str, group: str | None = None) -> bool:
        if not self._enabled:
            return False
        group = self._group(group)
        self._ensure_loaded(group)
        return self._store.has(group, name)

    def expired(self, name: str, group: str | None = None) -> bool:
        """True if ``name`` needs refreshing, even when a kept copy exists."""
        if not self._enabled:
            return True
        group = self._group(group)
        self._ensure_loaded(group)
        return self._store.expired(group, name)

    def has_group(self, group: str) -> bool:
        if not self._enabled:
            return False
        self._ensure_loaded(group)
        return self._store.has_alive_group(group)

    def get_group(self, group: str) -> dict[str, CacheItem]:
        """Copies of the group's records, keyed by item hash."""
        if not self._enabled:
            return {}
        self._ensure_loaded(group)
        return {key: item.model_copy() for key, item in self._store.items(group).items()}

    def get_path(self, name: str, group: str | None = None) -> Path | None:
        item = self._present_item(name, group)
        return self._store.path_for(item) if item else None

    def get_url(self, name: str, group: str | None = None) -> str | None:
        item = self._present_item(name, group)
        return f"{self._base_url}/{item.stored_filename}" if item else None

    def stats(self) -> CacheStats:
        """Counts and sizes across every registered group."""
        stats = CacheStats()
        if not self._enabled:
            return stats

        now = self._store.now()
        for group in self._persistence.load_registry().values():
            self._ensure_loaded(group)
            items = self._store.items(group).values()
            if not items:
                continue
            stats.groups += 1
            stats.group_names.append(group)
            for item in items:
                stats.items += 1
                if self._store.has(group, item.name):
                    stats.alive_items += 1
                if item.is_expired(now):
                    stats.expired_items += 1
                path = self._store.path_for(item)
                if path.is_file():
                    stats.size_bytes += path.stat().st_size
        return stats

    # ── Internals ──

    def _group(self, group: str | None) -> str:
        return group or self._default_group

    def _present_item(self, name: str, group: str | None) -> CacheItem | None:
        if not self._enabled:
            return None
        group = self._group(group)
        self._ensure_loaded(group)
        if not self._store.has(group, name):
            return None
        return self._store.get_item(group, name)

    def _ensure_loaded(self, group: str) -> list[str]:
        """Load the group if it is not resident. Returns names swept on load."""
        state = self._states.get(group, GroupState.UNLOADED)
        if state is GroupState.LOADED and self._persistence.is_stale(group):
            logger.debug("Metadata for group '%s' changed on disk; reloading", group)
            self._store.evict_group(group)
            state = GroupState.UNLOADED
        if state is GroupState.LOADED:
            return []

        # The load sweep unlinks files, so it runs under the group lock
        with self._persistence.group_lock(group):
            swept = self._persistence.load_group(group)
        self._sync_state(group)
        return swept

    @contextlib.contextmanager
    def _mutating(self, group: str) -> Iterator[list[str]]:
        with self._persistence.group_lock(group):
            try:
                yield self._ensure_loaded(group)
            except BaseException:
                # Memory may no longer match the metadata file; reload next time
                self._store.evict_group(group)
                self._states.pop(group, None)
                raise
            self._persistence.save_group(group)
        self._sync_state(group)

    def _expire_item(self, group: str, name: str) -> bool:
        payload = {"name": name, "group": group}
        if not self._hooks.before(HookEvent.EXPIRE, **payload):
            return False
        removed = self._store.remove_item(group, name)
        self._hooks.after(HookEvent.EXPIRE, **payload)
        return removed

    def _sync_state(self, group: str) -> None:
        resident = self._store.is_resident(group)
        self._states[group] = GroupState.LOADED if resident else GroupState.ABSENT
