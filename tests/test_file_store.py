"""
FileStore: single-file persistence, self-healing reads, failure degradation and
serialized writers within one process.
"""
from __future__ import annotations

import gc
import threading

import pytest

from option_store.core.types import MISSING
from option_store.store import file_store
from option_store.serializers import JsonSerializer
from option_store.store.file_store import OPTIONS_FILENAME, FileStore
from option_store.store.filesystem import Filesystem, LocalFilesystem
from tests.fakes import FailingFilesystem, MemoryFilesystem


@pytest.fixture
def store(tmp_path) -> FileStore:
    return FileStore(tmp_path / "options_dir")


class TestFileStoreBasic:
    def test_missing_file_reads_empty(self, store):
        assert store.all() == {}
        assert store.get("a") is MISSING
        assert store.by_tag("t") == {}
        assert store.many(["a"]) == {}

    def test_put_creates_directory_and_file(self, store):
        assert store.put("a", 1) is True
        assert store.path == store.directory / OPTIONS_FILENAME
        assert store.path.exists()
        assert store.get("a") == 1

    def test_put_replaces_value_and_tag(self, store):
        store.put("a", 1, "first")
        store.put("a", 2, "second")
        assert store.get("a") == 2
        assert store.by_tag("first") == {}
        assert store.by_tag("second") == {"a": 2}

    def test_stored_none_is_not_missing(self, store):
        store.put("n", None)
        assert store.get("n") is None

    def test_many_omits_absent_keys(self, store):
        store.put("a", 1)
        store.put("b", 2)
        assert store.many(["a", "zzz"]) == {"a": 1}

    def test_by_tag_is_exact(self, store):
        store.put("a", 1, "site")
        store.put("b", 2, "site.meta")
        store.put("c", 3)
        assert store.by_tag("site") == {"a": 1}

    def test_delete(self, store):
        store.put("a", 1)
        assert store.delete("a") is True
        assert store.get("a") is MISSING

    def test_delete_absent_key_is_true(self, store):
        assert store.delete("nope") is True
        assert not store.path.exists()

    def test_second_instance_sees_writes(self, tmp_path):
        FileStore(tmp_path).put("a", [1, 2])
        assert FileStore(tmp_path).get("a") == [1, 2]

    def test_no_temp_files_left(self, store):
        store.put("a", 1)
        store.put("b", 2)
        assert sorted(p.name for p in store.directory.iterdir()) == [OPTIONS_FILENAME]

    def test_local_filesystem_matches_protocol(self):
        assert isinstance(LocalFilesystem(), Filesystem)


class TestFileStoreJson:
    def test_values_keep_kinds(self, tmp_path):
        store = FileStore(tmp_path, serializer=JsonSerializer())
        store.put("n", 5, "t")
        store.put("flag", False, "t")
        store.put("list", [1, "x"], "t")
        assert store.by_tag("t") == {"n": 5, "flag": False, "list": [1, "x"]}
        assert store.path.read_bytes().startswith(b"{")


class TestFileStoreCorruption:
    def test_corrupt_file_reads_empty(self, store):
        store.put("a", 1)
        store.path.write_bytes(b"not a pickle")
        assert store.all() == {}
        assert store.get("a") is MISSING

    def test_put_heals_corrupt_file(self, store):
        store.put("a", 1)
        store.path.write_bytes(b"\x00\x01garbage")
        assert store.put("b", 2) is True
        assert store.all() == {"b": 2}

    def test_non_mapping_contents_read_empty(self, tmp_path):
        store = FileStore(tmp_path, serializer=JsonSerializer())
        (tmp_path / OPTIONS_FILENAME).write_bytes(b"[1, 2, 3]")
        assert store.all() == {}

    def test_bad_record_is_skipped(self, tmp_path):
        store = FileStore(tmp_path, serializer=JsonSerializer())
        store.put("good", 1)
        contents = store.path.read_bytes()
        bad = b'{"bad": {"key": "bad", "tag": null}, ' + contents[1:]
        store.path.write_bytes(bad)
        assert store.all() == {"good": 1}


class TestFileStoreFailures:
    def test_write_failure_returns_false(self, tmp_path):
        fs = FailingFilesystem(fail_write=True)
        store = FileStore(tmp_path, filesystem=fs)
        assert store.put("a", 1) is False
        assert store.get("a") is MISSING

    def test_makedirs_failure_returns_false(self, tmp_path):
        fs = FailingFilesystem(fail_write=False, fail_makedirs=True)
        store = FileStore(tmp_path / "ro", filesystem=fs)
        assert store.put("a", 1) is False
        assert fs.writes == []

    def test_unpicklable_value_returns_false(self, tmp_path):
        store = FileStore(tmp_path)
        store.put("a", 1)
        assert store.put("b", threading.Lock()) is False
        assert store.all() == {"a": 1}

    def test_delete_write_failure_returns_false(self, tmp_path):
        fs = MemoryFilesystem()
        store = FileStore(tmp_path, filesystem=fs)
        store.put("a", 1)
        failing = FailingFilesystem(fail_write=True)
        failing.files = dict(fs.files)
        assert FileStore(tmp_path, filesystem=failing).delete("a") is False

    def test_memory_filesystem_round_trip(self, tmp_path):
        fs = MemoryFilesystem()
        store = FileStore(tmp_path / "mem", filesystem=fs)
        assert store.put("a", {"x": 1}, "t") is True
        assert fs.writes == [str(store.path)]
        assert store.by_tag("t") == {"a": {"x": 1}}


class TestFileStoreConcurrency:
    def test_concurrent_puts_lose_nothing(self, tmp_path):
        stores = [FileStore(tmp_path) for _ in range(4)]
        errors = []

        def writer(idx: int) -> None:
            try:
                for n in range(25):
                    assert stores[idx].put(f"k{idx}_{n}", n)
            except AssertionError as exc:
                errors.append(exc)

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(FileStore(tmp_path).all()) == 100

    def test_stores_on_same_path_share_lock(self, tmp_path):
        assert FileStore(tmp_path)._lock is FileStore(tmp_path)._lock
        assert FileStore(tmp_path)._lock is not FileStore(tmp_path / "other")._lock

    def test_lock_dropped_with_last_store(self, tmp_path):
        store = FileStore(tmp_path / "short_lived")
        key = str(store.path.resolve())
        assert key in file_store._path_locks
        del store
        gc.collect()
        assert key not in file_store._path_locks
