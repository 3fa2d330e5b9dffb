"""Atomic file writes for the cache directory.

Every write lands in a temp file beside its target and is moved into place
with ``os.replace``, so readers never observe a half-written artifact or
metadata file.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from pathlib import Path


def write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via temp file + rename."""
    with _temp_beside(path) as tmp_path:
        tmp_path.write_bytes(data)
        _publish(tmp_path, path)


def copy_atomic(source: Path, path: Path) -> None:
    """Copy ``source``'s bytes to ``path`` via temp file + rename."""
    with _temp_beside(path) as tmp_path:
        shutil.copyfile(source, tmp_path)
        _publish(tmp_path, path)


def file_signature(path: Path) -> tuple[int, int, int] | None:
    """(inode, mtime_ns, size) of ``path``, or None if it does not exist."""
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    return (st.st_ino, st.st_mtime_ns, st.st_size)


def _publish(tmp_path: Path, path: Path) -> None:
    # mkstemp creates 0600; give the file the mode a plain open() would
    os.chmod(tmp_path, _default_file_mode())
    os.replace(tmp_path, path)


def _default_file_mode() -> int:
    # The umask can only be read by setting it
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


@contextlib.contextmanager
def _temp_beside(path: Path):
    fd, name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    os.close(fd)
    tmp_path = Path(name)
    try:
        yield tmp_path
    finally:
        # Already gone once os.replace has run
        tmp_path.unlink(missing_ok=True)
