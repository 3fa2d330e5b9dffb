"""Tests for the RenderCache facade."""

import re
import stat
import threading

import pytest

from rendercache.cache.hooks import HookDispatcher
from rendercache.cache.manager import RenderCache
from rendercache.types import GroupState, HookEvent, HookResult, MatchMode


def _data_file(cache, group):
    return cache.root / f"{cache._store.group_hash(group)}.data"


class TestPutAndQuery:
    def test_put_then_has(self, cache, make_source):
        assert cache.put("chart", make_source(), ttl=60)
        assert cache.has("chart")
        assert not cache.expired("chart")

    def test_missing_source_returns_false(self, cache, tmp_path):
        assert cache.put("chart", tmp_path / "missing.png") is False
        assert not cache.has("chart")

    def test_already_expired_put_is_refused(self, make_cache, make_source, cache_root):
        cache = make_cache()
        assert cache.put("chart", make_source(), ttl=0) is False
        assert not cache.has("chart")

        make_cache().purge()
        assert not [p for p in cache_root.iterdir() if p.suffix == ".png"]

    def test_zero_ttl_with_keep_is_stored(self, cache, make_source):
        assert cache.put("chart", make_source(), ttl=0, keep=True)
        assert cache.has("chart")
        assert cache.expired("chart")

    def test_artifact_is_world_readable(self, cache, make_source, umask_022):
        cache.put("chart", make_source(), ttl=60)
        assert stat.S_IMODE(cache.get_path("chart").stat().st_mode) == 0o644

    def test_default_ttl(self, make_cache, make_source, clock):
        cache = make_cache(default_ttl=30)
        cache.put("chart", make_source())
        clock.advance(29)
        assert cache.has("chart")
        clock.advance(1)
        assert not cache.has("chart")

    def test_get_path_and_url(self, make_cache, make_source):
        cache = make_cache(base_url="https://example.com/cache/")
        cache.put("chart", make_source("chart.png", b"pixels"), ttl=60)

        path = cache.get_path("chart")
        assert path.read_bytes() == b"pixels"
        assert path.parent == cache.root
        assert cache.get_url("chart") == f"https://example.com/cache/{path.name}"

    def test_default_url_is_file_uri(self, cache, make_source):
        cache.put("chart", make_source(), ttl=60)
        assert cache.get_url("chart").startswith("file://")

    def test_unknown_item_has_no_location(self, cache):
        assert cache.get_path("nope") is None
        assert cache.get_url("nope") is None

    def test_groups_are_separate(self, cache, make_source):
        cache.put("chart", make_source("a.png", b"a"), ttl=60, group="thumbs")
        cache.put("chart", make_source("b.png", b"b"), ttl=60, group="full")

        assert cache.get_path("chart", group="thumbs").read_bytes() == b"a"
        assert cache.get_path("chart", group="full").read_bytes() == b"b"
        assert not cache.has("chart")

    def test_deterministic_addressing(self, cache, make_source):
        cache.put("chart", make_source("one.png", b"f1"), ttl=60)
        cache.put("chart", make_source("two.png", b"f2"), ttl=60)

        stored = [p for p in cache.root.iterdir() if p.suffix == ".png"]
        assert len(stored) == 1
        assert stored[0].read_bytes() == b"f2"


class TestExpiry:
    def test_ttl_lapse(self, cache, make_source, clock):
        cache.put("chart", make_source(), ttl=60)
        clock.advance(61)
        assert not cache.has("chart")
        assert cache.expired("chart")
        assert cache.get_path("chart") is None

    def test_keep_asymmetry(self, cache, make_source, clock):
        cache.put("chart", make_source(), ttl=60, keep=True)
        clock.advance(61)
        assert cache.has("chart")
        assert cache.expired("chart")
        assert cache.get_path("chart").exists()

    def test_vanished_file(self, cache, make_source):
        cache.put("chart", make_source(), ttl=60)
        cache.get_path("chart").unlink()
        assert not cache.has("chart")
        assert cache.expired("chart")

    def test_extend(self, cache, make_source, clock):
        cache.put("chart", make_source(), ttl=60)
        assert cache.extend("chart", 100)
        clock.advance(120)
        assert cache.has("chart")

    def test_extend_persists(self, make_cache, make_source, clock):
        make_cache().put("chart", make_source(), ttl=60)
        make_cache().extend("chart", 100)
        clock.advance(120)
        assert make_cache().has("chart")

    def test_extend_unknown(self, cache):
        assert cache.extend("nope", 100) is False


class TestPersistenceAcrossRestart:
    def test_round_trip(self, make_cache, make_source):
        make_cache().put("chart", make_source("c.pdf", b"%PDF-1.7 body"), ttl=60, group="docs")

        reopened = make_cache()
        assert reopened.group_state("docs") is GroupState.UNLOADED
        assert reopened.get_path("chart", group="docs").read_bytes() == b"%PDF-1.7 body"
        assert reopened.group_state("docs") is GroupState.LOADED

    def test_load_sweeps_expired(self, make_cache, make_source, clock):
        first = make_cache()
        first.put("short", make_source("s.png"), ttl=10)
        first.put("long", make_source("l.png"), ttl=100)
        short_path = first.get_path("short")
        clock.advance(50)

        reopened = make_cache()
        assert reopened.get_group("default").keys() == {reopened._store.name_hash("long")}
        assert not short_path.exists()

    def test_different_salt_sees_nothing(self, make_cache, make_source):
        make_cache().put("chart", make_source(), ttl=60)
        assert not make_cache(salt="other").has("chart")


class TestExpire:
    def test_strict(self, cache, make_source):
        cache.put("chart", make_source("a.png"), ttl=60)
        cache.put("other", make_source("b.png"), ttl=60)
        assert cache.expire("chart") == ["chart"]
        assert not cache.has("chart")
        assert cache.has("other")

    def test_expire_absent_twice_is_noop(self, cache):
        assert cache.expire("nope") == []
        assert cache.expire("nope") == []

    def test_glob(self, cache, make_source):
        for name in ("report-jan", "report-feb", "summary"):
            cache.put(name, make_source(f"{name}.png"), ttl=60)

        removed = cache.expire("report-*", "glob")

        assert sorted(removed) == ["report-feb", "report-jan"]
        assert cache.has("summary")
        assert not cache.has("report-jan")

    def test_regex(self, cache, make_source):
        for name in ("v1-thumb", "v2-thumb", "v2-full"):
            cache.put(name, make_source(f"{name}.png"), ttl=60)

        assert sorted(cache.expire(r"^v2-", MatchMode.REGEX)) == ["v2-full", "v2-thumb"]
        assert cache.has("v1-thumb")

    def test_glob_removing_all_drops_group(self, cache, make_source):
        cache.put("a", make_source("a.png"), ttl=60, group="tmp")
        cache.put("b", make_source("b.png"), ttl=60, group="tmp")

        assert sorted(cache.expire("*", "glob", group="tmp")) == ["a", "b"]
        assert cache.group_state("tmp") is GroupState.ABSENT
        assert not cache.has_group("tmp")

    def test_unknown_mode(self, cache):
        with pytest.raises(ValueError):
            cache.expire("x", "fuzzy")

    def test_invalid_regex_leaves_group_reloadable(self, cache, make_source):
        cache.put("chart", make_source(), ttl=60)
        with pytest.raises(re.error):
            cache.expire("(", MatchMode.REGEX)

        assert cache.group_state() is GroupState.UNLOADED
        assert cache.has("chart")

    def test_failure_midway_resyncs_with_disk(self, make_cache, make_source):
        hooks = HookDispatcher()
        cache = make_cache(hooks=hooks)
        cache.put("a", make_source("a.png"), ttl=60)
        cache.put("b", make_source("b.png"), ttl=60)

        def fail(**kw):
            raise RuntimeError("observer failed")

        hooks.register_after(HookEvent.EXPIRE, fail)
        with pytest.raises(RuntimeError):
            cache.expire("*", "glob")

        assert cache.group_state() is GroupState.UNLOADED
        assert not cache.has("a")
        assert cache.has("b")


class TestGroupLifecycle:
    def test_last_item_removes_metadata(self, cache, make_source):
        cache.put("chart", make_source(), ttl=60, group="thumbs")
        assert cache.has_group("thumbs")
        assert _data_file(cache, "thumbs").exists()

        cache.expire("chart", group="thumbs")

        assert not cache.has_group("thumbs")
        assert not _data_file(cache, "thumbs").exists()

    def test_group_reused_after_absent(self, cache, make_source):
        cache.put("chart", make_source(), ttl=60, group="thumbs")
        cache.expire("chart", group="thumbs")
        cache.put("chart", make_source(), ttl=60, group="thumbs")
        assert cache.has("chart", group="thumbs")
        assert cache.group_state("thumbs") is GroupState.LOADED

    def test_get_group_returns_copies(self, cache, make_source):
        cache.put("chart", make_source(), ttl=60)
        (item,) = cache.get_group("default").values()
        item.keep = True
        (fresh,) = cache.get_group("default").values()
        assert fresh.keep is False

    def test_get_unknown_group(self, cache):
        assert cache.get_group("nope") == {}

    def test_clear_expired(self, cache, make_source, clock):
        cache.put("short", make_source("s.png"), ttl=10)
        cache.put("long", make_source("l.png"), ttl=100)
        clock.advance(50)

        assert cache.clear_expired() == ["short"]
        assert cache.has("long")

    def test_clear_expired_reports_load_sweep(self, make_cache, make_source, clock):
        make_cache().put("short", make_source(), ttl=10)
        clock.advance(50)
        assert make_cache().clear_expired("default") == ["short"]


class TestPurge:
    def test_removes_everything(self, cache, make_source):
        cache.put("a", make_source("a.png"), ttl=60, group="one")
        cache.put("b", make_source("b.png"), ttl=60, group="two", keep=True)

        cache.purge()

        assert not cache.has_group("one")
        assert not cache.has_group("two")
        leftovers = [p.name for p in cache.root.iterdir() if not p.name.endswith(".lock")]
        assert leftovers == ["groups.data"]

    def test_purge_from_fresh_process(self, make_cache, make_source):
        make_cache().put("a", make_source("a.png"), ttl=60, group="one")
        make_cache().purge()
        assert not make_cache().has("a", group="one")

    def test_purge_empty_cache(self, cache):
        cache.purge()


class TestHooks:
    def test_before_veto_put(self, make_cache, make_source):
        hooks = HookDispatcher()
        hooks.register_before(HookEvent.PUT, lambda **kw: HookResult.ABORT)
        cache = make_cache(hooks=hooks)

        assert cache.put("chart", make_source(), ttl=60) is False
        assert not cache.has("chart")

    def test_before_and_after_called(self, make_cache, make_source):
        calls = []
        hooks = HookDispatcher()
        hooks.register_before(HookEvent.PUT, lambda **kw: calls.append(("before", kw["name"])))
        hooks.register_after(HookEvent.PUT, lambda **kw: calls.append(("after", kw["name"])))
        cache = make_cache(hooks=hooks)

        cache.put("chart", make_source(), ttl=60)

        assert calls == [("before", "chart"), ("after", "chart")]

    def test_expire_veto_per_item(self, make_cache, make_source):
        hooks = HookDispatcher()
        hooks.register_before(HookEvent.EXPIRE, lambda name, group: name != "report-jan")
        cache = make_cache(hooks=hooks)
        cache.put("report-jan", make_source("j.png"), ttl=60)
        cache.put("report-feb", make_source("f.png"), ttl=60)

        assert cache.expire("report-*", "glob") == ["report-feb"]
        assert cache.has("report-jan")

    def test_purge_veto(self, make_cache, make_source):
        hooks = HookDispatcher()
        hooks.register_before(HookEvent.PURGE, lambda: False)
        cache = make_cache(hooks=hooks)
        cache.put("chart", make_source(), ttl=60)

        cache.purge()

        assert cache.has("chart")

    def test_extend_and_clear_expired_veto(self, make_cache, make_source, clock):
        hooks = HookDispatcher()
        hooks.register_before(HookEvent.EXTEND, lambda **kw: False)
        hooks.register_before(HookEvent.CLEAR_EXPIRED, lambda group: False)
        cache = make_cache(hooks=hooks)
        cache.put("chart", make_source(), ttl=60)

        assert cache.extend("chart", 100) is False
        assert cache.clear_expired() == []


class TestStaleness:
    def test_sees_writes_from_other_instance(self, make_cache, make_source):
        first = make_cache()
        first.put("a", make_source("a.png"), ttl=60)

        second = make_cache()
        second.put("b", make_source("b.png"), ttl=60)

        assert first.has("b")
        first.put("c", make_source("c.png"), ttl=60)
        assert make_cache().has("b")
        assert make_cache().has("c")


class TestLockedLoad:
    def test_reader_waits_for_writer_before_sweeping(self, make_cache, make_source, clock):
        make_cache().put("chart", make_source("old.png", b"stale"), ttl=10)
        clock.advance(20)
        writer = make_cache()
        reader = make_cache()
        seen = []
        reader_thread = threading.Thread(target=lambda: seen.append(reader.has("chart")))

        with writer._mutating("default"):
            writer._store.put("default", "chart", make_source("new.png", b"fresh"), 60)
            reader_thread.start()
            reader_thread.join(timeout=0.5)
            assert reader_thread.is_alive()

        reader_thread.join(timeout=10)
        assert seen == [True]
        fresh = make_cache()
        assert fresh.get_path("chart").read_bytes() == b"fresh"


class TestStats:
    def test_counts(self, cache, make_source, clock):
        cache.put("a", make_source("a.png", b"x" * 10), ttl=60, group="one")
        cache.put("b", make_source("b.png", b"y" * 20), ttl=10, group="two", keep=True)
        clock.advance(30)

        stats = cache.stats()

        assert stats.groups == 2
        assert stats.items == 2
        assert stats.alive_items == 2
        assert stats.expired_items == 1
        assert stats.size_bytes == 30
        assert sorted(stats.group_names) == ["one", "two"]


class TestDisabled:
    @pytest.fixture
    def disabled(self, tmp_path, clock):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        return RenderCache(blocker / "cache", salt="s", clock=clock)

    def test_is_disabled(self, disabled):
        assert disabled.enabled is False

    def test_operations_are_silent(self, disabled, make_source):
        assert disabled.put("chart", make_source(), ttl=60) is False
        assert disabled.has("chart") is False
        assert disabled.expired("chart") is True
        assert disabled.get_path("chart") is None
        assert disabled.get_url("chart") is None
        assert disabled.has_group("default") is False
        assert disabled.get_group("default") == {}
        assert disabled.extend("chart", 10) is False
        assert disabled.expire("*", "glob") == []
        assert disabled.clear_expired() == []
        assert disabled.stats().items == 0
        disabled.purge()

    def test_explicitly_disabled(self, make_cache, make_source):
        cache = make_cache(enabled=False)
        assert cache.put("chart", make_source(), ttl=60) is False
        assert not cache.root.exists() or not any(cache.root.iterdir())
