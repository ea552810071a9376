"""
TableStore over SQLiteConnection (BLOB) and SQLAlchemyConnection (TEXT, base64
wrapped payloads). Persistence failures degrade to False / empty results.
"""
from __future__ import annotations

import base64
import sqlite3

import pytest

from option_store.core.errors import ConfigurationError
from option_store.core.types import MISSING
from option_store.db.connection import SQLiteConnection, connect
from option_store.db.sqlalchemy_connection import SQLAlchemyConnection
from option_store.serializers import JsonSerializer
from option_store.store.table_store import TableStore
from tests.fakes import RecordingConnection


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "options.sqlite"


@pytest.fixture
def conn(db_path) -> SQLiteConnection:
    c = SQLiteConnection(db_path)
    c.ensure_table("options")
    return c


@pytest.fixture
def store(conn) -> TableStore:
    return TableStore(conn, "options")


class TestTableStoreBasic:
    def test_empty_table(self, store):
        assert store.all() == {}
        assert store.get("a") is MISSING
        assert store.many([]) == {}

    def test_put_get(self, store):
        assert store.put("a", {"x": 1}, "t") is True
        assert store.get("a") == {"x": 1}
        assert store.has("a") is True

    def test_put_existing_key_updates_in_place(self, store, db_path):
        store.put("a", 1, "first")
        assert store.put("a", 2, "second") is True
        with sqlite3.connect(db_path) as raw:
            rows = raw.execute('SELECT "key", "tag" FROM options').fetchall()
        assert rows == [("a", "second")]
        assert store.get("a") == 2

    def test_many_and_by_tag(self, store):
        store.put("a", 1, "site")
        store.put("b", 2, "site")
        store.put("c", 3, "other")
        assert store.many(["a", "c", "missing", "a"]) == {"a": 1, "c": 3}
        assert store.by_tag("site") == {"a": 1, "b": 2}
        assert store.by_tag("nothing") == {}

    def test_many_above_parameter_limit(self, store):
        for n in range(3):
            store.put(f"k{n}", n)
        keys = [f"k{n}" for n in range(1200)]
        assert store.many(keys) == {"k0": 0, "k1": 1, "k2": 2}

    def test_stored_none(self, store):
        store.put("n", None)
        assert store.get("n") is None
        assert store.has("n") is True

    def test_delete_is_count_based(self, store):
        store.put("a", 1)
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.get("a") is MISSING

    def test_update_only_touches_existing_rows(self, store):
        assert store.update("a", 1) is False
        store.put("a", 1)
        assert store.update("a", 5, "t") is True
        assert store.by_tag("t") == {"a": 5}

    def test_payload_is_raw_pickle_on_blob_column(self, store, db_path):
        store.put("a", "v")
        with sqlite3.connect(db_path) as raw:
            (value,) = raw.execute("SELECT value FROM options").fetchone()
        assert bytes(value).startswith(b"\x80")

    def test_accessors(self, store, conn):
        assert store.connection is conn
        assert store.table == "options"

    def test_invalid_table_name(self, conn):
        with pytest.raises(ConfigurationError):
            TableStore(conn, "options; DROP TABLE x")


class TestTableStoreDegradation:
    def test_missing_table_reads_empty(self, db_path):
        store = TableStore(SQLiteConnection(db_path), "never_created")
        assert store.all() == {}
        assert store.get("a") is MISSING
        assert store.put("a", 1) is False
        assert store.delete("a") is False
        assert store.has("a") is False

    def test_insert_failure(self, conn):
        rec = RecordingConnection(conn, fail={"insert"})
        store = TableStore(rec, "options")
        assert store.put("a", 1) is False
        assert rec.ops() == ["count", "insert"]

    def test_update_failure(self, conn):
        TableStore(conn, "options").put("a", 1)
        rec = RecordingConnection(conn, fail={"update"})
        assert TableStore(rec, "options").put("a", 2) is False
        assert TableStore(conn, "options").get("a") == 1

    def test_count_failure_skips_write(self, conn):
        rec = RecordingConnection(conn, fail={"count"})
        assert TableStore(rec, "options").put("a", 1) is False
        assert rec.ops() == ["count"]

    def test_undecodable_row_is_skipped(self, store, db_path):
        store.put("good", 1)
        with sqlite3.connect(db_path) as raw:
            raw.execute(
                "INSERT INTO options (key, value, tag) VALUES (?, ?, ?)",
                ("bad", sqlite3.Binary(b"\x80garbage"), None),
            )
        assert store.all() == {"good": 1}
        assert store.get("bad") is MISSING

    def test_unpicklable_value(self, store):
        assert store.put("a", lambda: 1) is False
        assert store.get("a") is MISSING


class TestTextOnlyConnection:
    def test_binary_payload_is_base64_wrapped(self, conn, db_path):
        rec = RecordingConnection(conn, binary_safe=False)
        store = TableStore(rec, "options")
        store.put("a", "value")
        with sqlite3.connect(db_path) as raw:
            (value,) = raw.execute("SELECT value FROM options").fetchone()
        payload = bytes(value)
        assert not payload.startswith(b"\x80")
        assert base64.b64decode(payload).startswith(b"\x80")
        assert store.get("a") == "value"

    def test_text_payload_is_not_wrapped(self, conn, db_path):
        rec = RecordingConnection(conn, binary_safe=False)
        store = TableStore(rec, "options", serializer=JsonSerializer())
        store.put("a", 3)
        with sqlite3.connect(db_path) as raw:
            (value,) = raw.execute("SELECT value FROM options").fetchone()
        assert bytes(value).startswith(b"{")
        assert store.get("a") == 3

    def test_sqlalchemy_connection(self, tmp_path):
        sa = SQLAlchemyConnection(f"sqlite:///{tmp_path / 'sa.sqlite'}")
        try:
            sa.ensure_table("options")
            sa.ensure_table("options")
            store = TableStore(sa, "options")
            assert store.put("a", {"nested": [1, 2]}, "t") is True
            assert store.put("a", {"nested": [3]}, "t") is True
            assert store.put("b", b"\x00\xff") is True
            assert store.get("a") == {"nested": [3]}
            assert store.get("b") == b"\x00\xff"
            assert store.by_tag("t") == {"a": {"nested": [3]}}
            assert store.many(["a", "b", "c"]) == {"a": {"nested": [3]}, "b": b"\x00\xff"}
            assert store.delete("a") is True
            assert store.delete("a") is False
            assert store.has("b") is True
        finally:
            sa.close()

    def test_sqlalchemy_missing_table_degrades(self, tmp_path):
        sa = SQLAlchemyConnection(f"sqlite:///{tmp_path / 'sa.sqlite'}")
        try:
            store = TableStore(sa, "absent")
            assert store.all() == {}
            assert store.put("a", 1) is False
        finally:
            sa.close()


class TestConnect:
    def test_sqlite_url(self, tmp_path):
        c = connect({"url": f"sqlite:///{tmp_path / 'a.sqlite'}"})
        assert isinstance(c, SQLiteConnection)
        assert c.binary_safe is True

    def test_path(self, tmp_path):
        assert isinstance(connect({"path": str(tmp_path / "a.sqlite")}), SQLiteConnection)

    def test_sqlalchemy_engine_forced(self, tmp_path):
        c = connect({"url": f"sqlite:///{tmp_path / 'a.sqlite'}", "engine": "sqlalchemy"})
        try:
            assert isinstance(c, SQLAlchemyConnection)
            assert c.binary_safe is False
        finally:
            c.close()

    def test_missing_url(self):
        with pytest.raises(ConfigurationError):
            connect({})

    def test_memory_database_rejected(self):
        with pytest.raises(ConfigurationError):
            SQLiteConnection(":memory:")

    def test_ensure_table_is_idempotent(self, db_path):
        c = SQLiteConnection(db_path)
        c.ensure_table("options")
        c.ensure_table("options")
        TableStore(c, "options").put("a", 1)
        c.ensure_table("options")
        assert TableStore(c, "options").get("a") == 1
