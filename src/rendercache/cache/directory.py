"""Cache root bootstrap and permission check."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from rendercache.errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_DIR_MODE = 0o755


def ensure_cache_root(path: Path, mode: int = _DIR_MODE) -> Path:
    """Create ``path`` if needed and check it is a writable directory.

    Raises ConfigurationError otherwise.
    """
    try:
        path.mkdir(mode=mode, parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(
            f"The cache directory '{path}' could not be created: {e}", path=path
        ) from e

    if not path.is_dir() or not os.access(path, os.R_OK | os.W_OK | os.X_OK):
        raise ConfigurationError(
            f"The cache directory '{path}' is not writable. The user running "
            "rendercache needs read, write, and execute permissions on it.",
            path=path,
        )
    return path


def prepare_cache_root(path: Path, mode: int = _DIR_MODE) -> bool:
    """Like ensure_cache_root, but log and return False instead of raising."""
    try:
        ensure_cache_root(path, mode)
    except ConfigurationError as e:
        logger.warning("%s The cache is disabled.", e.message)
        return False
    return True
