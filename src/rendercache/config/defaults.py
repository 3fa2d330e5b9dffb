"""Package-level default configuration values."""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Default cache location
DEFAULT_CACHE_ROOT = Path.home() / ".rendercache" / "cache"
DEFAULT_BASE_URL = None  # file:// URI of the cache root

# Default item settings
DEFAULT_GROUP = "default"
DEFAULT_TTL_SECONDS = 86400  # 1 day

# Hashing salt; empty means filenames are guessable
DEFAULT_SALT = ""

# Lock settings
DEFAULT_LOCK_TIMEOUT = 10.0

DEFAULT_CACHE_DISABLED = False

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "cache_root": DEFAULT_CACHE_ROOT,
        "base_url": DEFAULT_BASE_URL,
        "default_group": DEFAULT_GROUP,
        "default_ttl": DEFAULT_TTL_SECONDS,
        "salt": DEFAULT_SALT,
        "lock_timeout": DEFAULT_LOCK_TIMEOUT,
        "cache_disabled": DEFAULT_CACHE_DISABLED,
        "log_level": DEFAULT_LOG_LEVEL,
    }
