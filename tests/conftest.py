import os
from pathlib import Path

import pytest

from rendercache.cache.manager import RenderCache


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_root(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def make_cache(cache_root, clock):
    """Build a RenderCache over the shared root; call again to simulate a restart."""

    def _make(**kwargs) -> RenderCache:
        kwargs.setdefault("salt", "site-guid")
        kwargs.setdefault("clock", clock)
        return RenderCache(cache_root, **kwargs)

    return _make


@pytest.fixture
def cache(make_cache):
    return make_cache()


@pytest.fixture
def make_source(tmp_path):
    """Write a source artifact and return its path."""
    src_dir = tmp_path / "src"
    src_dir.mkdir()

    def _make(filename: str = "render.png", content: bytes = b"\x89PNG fake") -> Path:
        path = src_dir / filename
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def umask_022():
    old = os.umask(0o022)
    yield
    os.umask(old)
