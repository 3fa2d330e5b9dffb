"""Group metadata and registry files in the cache root.

Layout::

    <root>/groups.data          group hash -> group name
    <root>/<group_hash>.data    item hash -> CacheItem record
    <root>/<group_hash>.lock    per-group lock held by mutating calls
    <root>/groups.lock          registry lock
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from filelock import FileLock
from pydantic import ValidationError

from rendercache.cache.files import file_signature, write_atomic
from rendercache.cache.store import CacheStore
from rendercache.errors.exceptions import MetadataError
from rendercache.types import CacheItem

logger = logging.getLogger(__name__)

_REGISTRY_NAME = "groups"
_DATA_SUFFIX = ".data"
_LOCK_SUFFIX = ".lock"
_DEFAULT_LOCK_TIMEOUT = 10.0


class GroupPersistence:
    """Reads and writes the store's groups through the cache root."""

    def __init__(self, store: CacheStore, lock_timeout: float = _DEFAULT_LOCK_TIMEOUT) -> None:
        self._store = store
        self._root = store.root
        self._lock_timeout = lock_timeout
        self._locks: dict[str, FileLock] = {}
        self._signatures: dict[str, tuple[int, int, int] | None] = {}

    # ── Paths ──

    def group_file(self, group: str) -> Path:
        return self._root / f"{self._store.group_hash(group)}{_DATA_SUFFIX}"

    @property
    def registry_file(self) -> Path:
        return self._root / f"{_REGISTRY_NAME}{_DATA_SUFFIX}"

    # ── Locks ──

    def group_lock(self, group: str) -> FileLock:
        return self._lock(self._store.group_hash(group))

    def registry_lock(self) -> FileLock:
        return self._lock(_REGISTRY_NAME)

    def _lock(self, stem: str) -> FileLock:
        # One FileLock per path: separate instances on the same file would
        # block each other inside this process
        lock = self._locks.get(stem)
        if lock is None:
            lock = FileLock(self._root / f"{stem}{_LOCK_SUFFIX}", timeout=self._lock_timeout)
            self._locks[stem] = lock
        return lock

    # ── Groups ──

    def load_group(self, group: str) -> list[str]:
        """Make ``group`` resident from its metadata file, then sweep it.

        With no metadata file the group starts out empty. Returns the names
        removed by the sweep.
        """
        path = self.group_file(group)
        signature = file_signature(path)
        if signature is None:
            self._store.install_group(group, {})
            self._signatures[group] = None
            logger.debug("No metadata for group '%s'; starting empty", group)
            return []

        raw = _read_json(path)
        try:
            items = {key: CacheItem.model_validate(record) for key, record in raw.items()}
        except ValidationError as e:
            raise MetadataError(f"Invalid item record in {path}: {e}", path=path, original=e) from e

        self._store.install_group(group, items)
        self._signatures[group] = signature
        logger.debug("Loaded %d item(s) for group '%s'", len(items), group)
        return self._store.clear_expired_in_group(group)

    def save_group(self, group: str) -> None:
        """Write ``group`` out if alive, else delete its file; then the registry."""
        path = self.group_file(group)
        alive = self._store.has_alive_group(group)
        if alive:
            records = {
                key: item.model_dump(mode="json") for key, item in self._store.items(group).items()
            }
            write_atomic(path, _dump_json(records))
        else:
            self._store.drop_group(group)
            path.unlink(missing_ok=True)
        self._signatures[group] = file_signature(path)
        self.save_registry(group, alive)

    def is_stale(self, group: str) -> bool:
        """True if the metadata file changed since this process last saw it."""
        if group not in self._signatures:
            return False
        return file_signature(self.group_file(group)) != self._signatures[group]

    # ── Registry ──

    def load_registry(self) -> dict[str, str]:
        """Read the registry from disk into the store and return it."""
        registry = self._read_registry()
        self._store.set_registry(registry)
        return registry

    def save_registry(self, group: str, alive: bool) -> None:
        """Rewrite the registry with ``group``'s entry brought up to date.

        Entries for other groups are taken from disk, so processes that save
        different groups never drop each other's registrations.
        """
        ghash = self._store.group_hash(group)
        with self.registry_lock():
            registry = self._read_registry()
            if alive:
                registry[ghash] = group
            else:
                registry.pop(ghash, None)
            write_atomic(self.registry_file, _dump_json(registry))
        self._store.set_registry(registry)

    def _read_registry(self) -> dict[str, str]:
        if not self.registry_file.exists():
            return {}
        raw = _read_json(self.registry_file)
        if not all(isinstance(v, str) for v in raw.values()):
            raise MetadataError(
                f"Invalid group registry in {self.registry_file}", path=self.registry_file
            )
        return raw


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_bytes())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MetadataError(f"Corrupt metadata file {path}: {e}", path=path, original=e) from e
    if not isinstance(data, dict):
        raise MetadataError(
            f"Expected a JSON object in {path}, got {type(data).__name__}", path=path
        )
    return data


def _dump_json(data: dict[str, Any]) -> bytes:
    return json.dumps(data, sort_keys=True, indent=2).encode("utf-8")
