"""Cache addressing — salted, deterministic, filesystem-safe identifiers."""

from __future__ import annotations

import hashlib
from pathlib import Path


def group_hash(group: str, salt: str) -> str:
    """Hash a group name for use as its metadata filename."""
    return _salted_digest(group, salt)


def name_hash(name: str, salt: str) -> str:
    """Hash an item name.

    The salt is shared across groups, so the same name hashes identically in
    every group. Groups stay apart because each keeps its own item map.
    """
    return _salted_digest(name, salt)


def storage_key(group: str, name: str, salt: str) -> str:
    """Return ``<group_hash>.<name_hash>``, the base of a stored filename."""
    return f"{group_hash(group, salt)}.{name_hash(name, salt)}"


def stored_filename(group: str, name: str, source: str | Path, salt: str) -> str:
    """Storage key plus the source file's extension.

    A source without an extension yields the bare storage key.
    """
    key = storage_key(group, name, salt)
    ext = file_extension(source)
    return f"{key}.{ext}" if ext else key


def file_extension(path: str | Path) -> str:
    """Last suffix of ``path`` without the dot (``"png"``), or ``""``."""
    return Path(path).suffix[1:]


def _salted_digest(value: str, salt: str) -> str:
    return hashlib.sha256((value + salt).encode("utf-8")).hexdigest()
