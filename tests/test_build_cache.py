import errno
import json
import logging
from pathlib import Path

import pytest

from depcache.cache import BuildCache
from depcache.config import load_settings
from depcache.errors import CacheDirectoryError, CacheWriteError, IndexCorruptError


@pytest.fixture
def sources(tmp_path, make_file):
    main = make_file(tmp_path / "src" / "main.less", "@import 'vars';", age=7200)
    vars_ = make_file(tmp_path / "src" / "vars.less", "@c: red;", age=7200)
    return str(main), str(vars_)


def _cached(cache_dir, source, deps, content):
    cache = BuildCache(cache_dir).load()
    cache.set(source, deps, content)
    cache.save()
    return cache


def test_unknown_source_is_a_miss(cache_dir, sources):
    cache = BuildCache(cache_dir).load()

    assert cache.check(sources[0]) is None
    assert cache.get(sources[0]) is None
    assert not cache.is_fresh(sources[0])


def test_staged_content_is_not_persisted_until_save(cache_dir, sources):
    main, vars_ = sources
    cache = BuildCache(cache_dir).load()
    cache.set(main, [vars_], "body { color: red; }")

    assert cache.check(main) is None
    assert cache.get(main) is None
    assert cache.get_staged(main) == "body { color: red; }"

    written = cache.save()

    assert written == [cache.get_cache_name(main)]
    assert cache.check(main) == "body { color: red; }"
    assert cache.get_staged(main) is None
    assert cache.record(main).content is None


def test_saved_entry_survives_a_new_context(cache_dir, sources):
    main, vars_ = sources
    _cached(cache_dir, main, [vars_], "body {}")

    reloaded = BuildCache(cache_dir).load()

    assert reloaded.check(main) == "body {}"
    assert main in reloaded
    assert main in reloaded.record(main).dependencies


def test_index_file_holds_metadata_only(cache_dir, sources):
    main, vars_ = sources
    cache = _cached(cache_dir, main, [vars_], "body {}")

    data = json.loads(cache.index_path.read_text())

    assert set(data) == {main}
    assert set(data[main]) == {"lastModified", "deps"}
    assert sorted(data[main]["deps"]) == sorted([main, vars_])
    assert (cache_dir / cache.get_cache_name(main)).read_text() == "body {}"


def test_save_twice_is_idempotent(cache_dir, sources):
    main, vars_ = sources
    cache = _cached(cache_dir, main, [vars_, str(cache_dir / "gone.less")], "body {}")
    content_path = cache_dir / cache.get_cache_name(main)
    index_before = cache.index_path.read_bytes()
    content_stat = content_path.stat().st_mtime_ns

    assert cache.save() == []

    assert cache.index_path.read_bytes() == index_before
    assert content_path.read_text() == "body {}"
    assert content_path.stat().st_mtime_ns == content_stat


def test_newer_dependency_invalidates(cache_dir, sources, set_age):
    main, vars_ = sources
    _cached(cache_dir, main, [vars_], "body {}")
    set_age(Path(vars_), -3600)

    assert BuildCache(cache_dir).load().check(main) is None


def test_deleted_dependency_invalidates(cache_dir, sources):
    main, vars_ = sources
    _cached(cache_dir, main, [vars_], "body {}")
    Path(vars_).unlink()

    assert BuildCache(cache_dir).load().check(main) is None


def test_source_itself_invalidates(cache_dir, sources, set_age):
    main, _ = sources
    _cached(cache_dir, main, [], "body {}")
    set_age(Path(main), -3600)

    assert BuildCache(cache_dir).load().check(main) is None


def test_memoized_times_hide_changes_until_refresh(cache_dir, sources, set_age):
    main, vars_ = sources
    cache = _cached(cache_dir, main, [vars_], "body {}")
    assert cache.check(main) == "body {}"

    set_age(Path(vars_), -3600)

    assert cache.check(main) == "body {}"
    cache.refresh_timestamps()
    assert cache.check(main) is None


def test_load_clears_memoized_times(cache_dir, sources, set_age):
    main, vars_ = sources
    cache = _cached(cache_dir, main, [vars_], "body {}")
    assert cache.check(main) == "body {}"

    set_age(Path(vars_), -3600)

    assert cache.load().check(main) is None


def test_save_orders_dependencies_newest_first(cache_dir, tmp_path, make_file):
    old = str(make_file(tmp_path / "old.less", age=7200))
    new = str(make_file(tmp_path / "new.less", age=600))
    main = str(make_file(tmp_path / "main.less", age=3600))
    cache = _cached(cache_dir, main, [old, new], "body {}")

    assert cache.record(main).dependencies == [new, main, old]
    assert json.loads(cache.index_path.read_text())[main]["deps"] == [new, main, old]


def test_colliding_sources_share_one_content_file(cache_dir, tmp_path, make_file):
    first = str(make_file(tmp_path / "a" / "b.css", age=3600))
    second = str(make_file(tmp_path / "a_b.css", age=3600))
    cache = BuildCache(cache_dir).load()
    assert cache.get_cache_name(first) == cache.get_cache_name(second)

    cache.set(first, [], "first")
    cache.set(second, [], "second")
    cache.save()

    assert cache.check(first) == "second"
    assert cache.check(second) == "second"
    assert len([p for p in cache_dir.iterdir() if p.name != "info.json"]) == 1


def test_binary_content(cache_dir, sources):
    main, _ = sources
    cache = _cached(cache_dir, main, [], b"\x89PNG")

    assert cache.get_bytes(main) == b"\x89PNG"


def test_load_creates_nested_directory(tmp_path):
    target = tmp_path / "a" / "b" / "cache"

    cache = BuildCache(target).load()

    assert target.is_dir()
    assert len(cache) == 0


def test_directory_creation_failure_is_fatal(tmp_path):
    blocker = tmp_path / "cache"
    blocker.write_text("not a directory")

    with pytest.raises(CacheDirectoryError):
        BuildCache(blocker).load()


def test_corrupt_index_is_fatal_by_default(cache_dir):
    cache_dir.mkdir()
    (cache_dir / "info.json").write_text("{broken")

    with pytest.raises(IndexCorruptError):
        BuildCache(cache_dir).load()


def test_corrupt_index_can_reset(cache_dir, caplog):
    cache_dir.mkdir()
    (cache_dir / "info.json").write_text("{broken")
    settings = load_settings(on_corrupt_index="reset")

    with caplog.at_level(logging.WARNING):
        cache = BuildCache(cache_dir, settings=settings).load()

    assert len(cache) == 0
    assert any("index_reset" in record.getMessage() for record in caplog.records)


def test_save_can_switch_directory(cache_dir, tmp_path, sources):
    main, _ = sources
    cache = BuildCache(cache_dir).load()
    cache.set(main, [], "body {}")
    other = tmp_path / "elsewhere"

    cache.save(other)

    assert cache.directory == other
    assert (other / "info.json").exists()
    assert BuildCache(other).load().check(main) == "body {}"


def test_save_write_failure_propagates(cache_dir, sources, monkeypatch):
    main, _ = sources
    cache = BuildCache(cache_dir).load()
    cache.set(main, [], "body {}")

    def fail(self, data):
        raise PermissionError(errno.EACCES, "Permission denied")

    monkeypatch.setattr(Path, "write_bytes", fail)

    with pytest.raises(CacheWriteError):
        cache.save()
    assert cache.get_staged(main) == "body {}"


def test_custom_index_filename(cache_dir, sources):
    main, _ = sources
    settings = load_settings(index_filename="manifest.json")
    cache = BuildCache(cache_dir, settings=settings).load()
    cache.set(main, [], "body {}")
    cache.save()

    assert (cache_dir / "manifest.json").exists()
    assert not (cache_dir / "info.json").exists()


def test_directory_defaults_to_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("DEPCACHE_DIR", str(tmp_path / "from-env"))

    cache = BuildCache().load()

    assert cache.directory == tmp_path / "from-env"
    assert cache.directory.is_dir()


def test_discard_forgets_record_and_file(cache_dir, sources):
    main, vars_ = sources
    cache = _cached(cache_dir, main, [vars_], "body {}")

    assert cache.discard(main) is True
    cache.save()

    assert main not in cache
    assert not (cache_dir / cache.get_cache_name(main)).exists()
    assert BuildCache(cache_dir).load().check(main) is None
    assert cache.discard(main) is False


def test_purge_orphans_keeps_index_records_and_temp_files(cache_dir, sources):
    main, _ = sources
    cache = _cached(cache_dir, main, [], "body {}")
    (cache_dir / "stale.css").write_text("old")
    (cache_dir / "half.css.tmp").write_text("partial")

    assert cache.purge_orphans() == ["stale.css"]
    assert sorted(p.name for p in cache_dir.iterdir()) == sorted(
        ["info.json", cache.get_cache_name(main), "half.css.tmp"]
    )


def test_records_are_copies(cache_dir, sources):
    main, _ = sources
    cache = _cached(cache_dir, main, [], "body {}")

    cache.records()[main].dependencies.append("/elsewhere.less")

    assert cache.record(main).dependencies == [main]


def test_restaged_source_misses_until_saved(cache_dir, sources):
    main, vars_ = sources
    _cached(cache_dir, main, [vars_], "old css")
    cache = BuildCache(cache_dir).load()
    assert cache.check(main) == "old css"

    cache.set(main, [vars_], "new css")

    assert cache.check(main) is None
    assert not cache.is_fresh(main)
    assert cache.get_staged(main) == "new css"

    cache.save()

    assert cache.check(main) == "new css"


def test_discard_removes_the_file_shared_with_a_colliding_source(
    cache_dir, tmp_path, make_file
):
    first = str(make_file(tmp_path / "a" / "b.css", age=3600))
    second = str(make_file(tmp_path / "a_b.css", age=3600))
    cache = BuildCache(cache_dir).load()
    cache.set(first, [], "first")
    cache.set(second, [], "second")
    cache.save()

    assert cache.discard(first) is True

    assert second in cache
    assert cache.get(second) is None
    assert cache.check(second) is None
