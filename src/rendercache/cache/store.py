"""In-memory cache store — item metadata for resident groups.

Everything here works on the in-memory maps only. Loading groups from disk
and writing them back is the persistence layer's job; the store only touches
the filesystem for the artifacts themselves (copy on put, unlink on remove,
existence checks on has/expired).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from rendercache.cache.files import copy_atomic
from rendercache.cache.keys import group_hash, name_hash, stored_filename
from rendercache.errors.exceptions import SourceNotFoundError
from rendercache.types import CacheItem

logger = logging.getLogger(__name__)


class CacheStore:
    """Item maps keyed by group hash, plus the group registry."""

    def __init__(
        self,
        root: Path,
        salt: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._root = root
        self._salt = salt
        self._clock = clock
        self._groups: dict[str, dict[str, CacheItem]] = {}
        self._registry: dict[str, str] = {}

    @property
    def root(self) -> Path:
        return self._root

    def now(self) -> float:
        return self._clock()

    def group_hash(self, group: str) -> str:
        return group_hash(group, self._salt)

    def name_hash(self, name: str) -> str:
        return name_hash(name, self._salt)

    # ── Group residency ──

    def is_resident(self, group: str) -> bool:
        return self.group_hash(group) in self._groups

    def install_group(self, group: str, items: dict[str, CacheItem]) -> None:
        """Make ``items`` the resident map for ``group``, replacing any old one."""
        self._groups[self.group_hash(group)] = dict(items)

    def evict_group(self, group: str) -> None:
        """Forget the resident map without touching files or the registry."""
        self._groups.pop(self.group_hash(group), None)

    def items(self, group: str) -> dict[str, CacheItem]:
        return dict(self._groups.get(self.group_hash(group), {}))

    def names(self, group: str) -> list[str]:
        return [item.name for item in self._groups.get(self.group_hash(group), {}).values()]

    def get_item(self, group: str, name: str) -> CacheItem | None:
        return self._groups.get(self.group_hash(group), {}).get(self.name_hash(name))

    def path_for(self, item: CacheItem) -> Path:
        return self._root / item.stored_filename

    # ── Registry ──

    @property
    def registry(self) -> dict[str, str]:
        return dict(self._registry)

    def set_registry(self, registry: dict[str, str]) -> None:
        self._registry = dict(registry)

    # ── Mutations ──

    def put(
        self,
        group: str,
        name: str,
        source: str | Path,
        ttl_seconds: float,
        keep: bool = False,
    ) -> CacheItem:
        """Copy ``source`` into the cache and record it. Last put wins."""
        source = Path(source)
        if not source.is_file():
            raise SourceNotFoundError(f"Source file not found: {source}", source=source)

        ghash = self.group_hash(group)
        nhash = self.name_hash(name)
        items = self._groups.setdefault(ghash, {})
        filename = stored_filename(group, name, source, self._salt)

        copy_atomic(source, self._root / filename)

        previous = items.get(nhash)
        if previous is not None and previous.stored_filename != filename:
            # Same key, different extension: keep exactly one file per key
            self.path_for(previous).unlink(missing_ok=True)

        item = CacheItem(
            name=name,
            group=group,
            stored_filename=filename,
            expires_at=self.now() + ttl_seconds,
            keep=keep,
        )
        items[nhash] = item
        self._registry.setdefault(ghash, group)
        logger.debug("Cached '%s' in group '%s' as %s", name, group, filename)
        return item

    def extend(self, group: str, name: str, extra_seconds: float) -> bool:
        """Push back an item's expiry. Returns False if there is no such item."""
        item = self.get_item(group, name)
        if item is None:
            return False
        item.expires_at += extra_seconds
        return True

    def remove_item(self, group: str, name: str) -> bool:
        """Delete an item's file and record; drop the group if no longer alive.

        Returns whether a record was removed. Unknown names and non-resident
        groups are no-ops.
        """
        ghash = self.group_hash(group)
        items = self._groups.get(ghash)
        if items is None:
            return False

        item = items.pop(self.name_hash(name), None)
        if item is not None:
            self.path_for(item).unlink(missing_ok=True)
            logger.debug("Removed '%s' from group '%s'", name, group)

        if not self.has_alive_group(group):
            self.drop_group(group)
        return item is not None

    def clear_expired_in_group(self, group: str) -> list[str]:
        """Remove every item that fails ``has``. Returns the removed names."""
        dead = [item.name for item in self.items(group).values() if not self.has(group, item.name)]
        for name in dead:
            self.remove_item(group, name)
        if dead:
            logger.debug("Swept %d expired item(s) from group '%s'", len(dead), group)
        return dead

    # ── Queries ──

    def has(self, group: str, name: str) -> bool:
        item = self.get_item(group, name)
        if item is None or not item.is_alive(self.now()):
            return False
        return self.path_for(item).is_file()

    def expired(self, group: str, name: str) -> bool:
        item = self.get_item(group, name)
        if item is None or item.is_expired(self.now()):
            return True
        return not self.path_for(item).is_file()

    def has_alive_group(self, group: str) -> bool:
        return any(self.has(group, name) for name in self.names(group))

    def drop_group(self, group: str) -> None:
        """Forget ``group`` and unlink the files of whatever records it still holds."""
        ghash = self.group_hash(group)
        # Leftover records are dead; don't orphan their files
        for item in self._groups.pop(ghash, {}).values():
            self.path_for(item).unlink(missing_ok=True)
        self._registry.pop(ghash, None)
        logger.debug("Group '%s' has no live items; dropped", group)
