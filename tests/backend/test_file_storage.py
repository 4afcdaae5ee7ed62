import os
import threading

import pytest

from jkv_lib.commands import CommandDispatcher
from jkv_lib.exceptions import (
    InvalidKeyError,
    NotFoundError,
    NotOpenError,
    StorageIOError,
    TypeConflictError,
)
from jkv_lib.storage import file_backend
from jkv_lib.storage.file_backend import FileStorageBackend


@pytest.fixture
def store(tmp_path):
    s = FileStorageBackend(data_dir=tmp_path / "db")
    s.open()
    yield s
    s.close()


def test_open_creates_layout_and_is_idempotent(tmp_path):
    s = FileStorageBackend(data_dir=tmp_path / "db")
    assert s.is_open is False
    s.open()
    assert (tmp_path / "db" / "scalars").is_dir()
    assert (tmp_path / "db" / "hashes").is_dir()
    s.set("a", "1")
    s.open()
    assert s.is_open is True
    assert s.get("a") == b"1"


def test_open_fails_when_root_is_a_file(tmp_path):
    (tmp_path / "db").write_text("not a directory")
    s = FileStorageBackend(data_dir=tmp_path / "db")
    with pytest.raises(StorageIOError):
        s.open()
    assert s.is_open is False


def test_set_then_get_returns_value(store, tmp_path):
    store.set("alpha", "1")
    assert store.get("alpha") == b"1"
    assert (tmp_path / "db" / "scalars" / "alpha").read_bytes() == b"1"

    store.set("alpha", b"\x00\xff")
    assert store.get("alpha") == b"\x00\xff"


def test_writes_leave_no_temporary_files(store, tmp_path):
    store.set("a", "1")
    store.hset("h", "f", "v")
    assert sorted(os.listdir(tmp_path / "db")) == ["hashes", "scalars"]


def test_get_missing_key_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.get("nope")
    # missing keys are also KeyErrors
    with pytest.raises(KeyError):
        store.get("nope")


def test_delete_then_exists_and_get(store):
    store.set("k", "v")
    assert store.delete("k") == 1
    assert store.exists("k") == 0
    with pytest.raises(NotFoundError):
        store.get("k")


def test_delete_missing_key_surfaces_not_found(store):
    with pytest.raises(NotFoundError):
        store.delete("missing")


def test_delete_several_keys(store):
    store.set("a", "1")
    store.set("b", "2")
    assert store.delete("a", "b") == 2
    assert store.keys() == []


def test_exists_counts_scalars_only(store):
    store.set("a", "1")
    store.hset("h", "f", "v")
    assert store.exists("a", "h", "missing") == 1


def test_reads_tolerate_missing_root(store):
    store.set("a", "1")
    store.flushdb()
    assert store.exists("a") == 0
    assert store.hexists("h", "f") is False
    assert store.keys() == []


def test_close_keeps_data(tmp_path):
    s = FileStorageBackend(data_dir=tmp_path / "db")
    s.open()
    s.set("a", "1")
    s.close()
    with pytest.raises(NotOpenError):
        s.get("a")

    again = FileStorageBackend(data_dir=tmp_path / "db")
    again.open()
    assert again.get("a") == b"1"


@pytest.mark.parametrize(
    "call",
    [
        lambda s: s.get("a"),
        lambda s: s.set("a", "1"),
        lambda s: s.delete("a"),
        lambda s: s.exists("a"),
        lambda s: s.keys("*"),
        lambda s: s.hget("h", "f"),
        lambda s: s.hset("h", "f", "v"),
        lambda s: s.hdel("h", "f"),
        lambda s: s.hkeys("h"),
        lambda s: s.hexists("h", "f"),
        lambda s: s.flushdb(),
        lambda s: s.ping(),
    ],
)
def test_closed_store_rejects_every_operation(tmp_path, call):
    s = FileStorageBackend(data_dir=tmp_path / "db")
    with pytest.raises(NotOpenError):
        call(s)


def test_hset_hget_hkeys(store, tmp_path):
    assert store.hset("beta", "f1", "x") == 1
    assert store.hset("beta", "f1", "y") == 0
    store.hset("beta", "f2", "z")
    assert store.hget("beta", "f1") == b"y"
    assert store.hkeys("beta") == ["f1", "f2"]
    assert store.hexists("beta", "f2") is True
    assert store.hexists("beta", "f3") is False
    assert (tmp_path / "db" / "hashes" / "beta" / "f2").read_bytes() == b"z"


def test_hget_missing_hash_or_field(store):
    with pytest.raises(NotFoundError):
        store.hget("nohash", "f")
    store.hset("h", "f", "v")
    with pytest.raises(NotFoundError):
        store.hget("h", "other")


def test_hset_on_scalar_is_type_conflict(store, tmp_path):
    store.set("alpha", "1")
    with pytest.raises(TypeConflictError):
        store.hset("alpha", "z", "1")
    assert not (tmp_path / "db" / "hashes" / "alpha").exists()


def test_set_on_hash_is_type_conflict(store, tmp_path):
    store.hset("h", "f", "v")
    with pytest.raises(TypeConflictError):
        store.set("h", "1")
    assert not (tmp_path / "db" / "scalars" / "h").exists()


def test_hdel_returns_remaining_and_drops_empty_hash(store, tmp_path):
    store.hset("h", "f1", "a")
    store.hset("h", "f2", "b")
    assert store.hdel("h", "f1") == 1
    assert store.hdel("h", "f2") == 0
    assert not (tmp_path / "db" / "hashes" / "h").exists()
    with pytest.raises(NotFoundError):
        store.hkeys("h")
    assert "h" not in store.keys()


def test_hdel_missing_field_surfaces_not_found(store):
    store.hset("h", "f", "v")
    with pytest.raises(NotFoundError):
        store.hdel("h", "nope")
    with pytest.raises(NotFoundError):
        store.hdel("nohash", "f")


def test_hdel_surfaces_listing_error(store, monkeypatch):
    store.hset("h", "f1", "a")

    def boom(path):
        raise PermissionError("denied")

    monkeypatch.setattr(file_backend.os, "listdir", boom)
    with pytest.raises(StorageIOError):
        store.hdel("h", "f1")


def test_keys_is_union_without_duplicates(store):
    store.set("b", "2")
    store.set("a", "1")
    store.hset("h", "f", "v")
    assert store.keys() == ["a", "b", "h"]
    assert store.keys("*") == ["a", "b", "h"]
    assert store.keys("h*") == ["h"]
    assert store.keys("?") == ["a", "b", "h"]


def test_flushdb_then_open_yields_empty_store(store, tmp_path):
    store.set("a", "1")
    store.hset("h", "f", "v")
    store.flushdb()
    assert not (tmp_path / "db").exists()
    assert store.is_open is True
    store.open()
    assert store.keys("*") == []


def test_writes_after_flush_fail_until_reopened(store):
    store.flushdb()
    with pytest.raises(StorageIOError):
        store.set("a", "1")
    with pytest.raises(StorageIOError):
        store.hset("h", "f", "v")
    store.open()
    store.set("a", "1")
    assert store.get("a") == b"1"


@pytest.mark.parametrize("name", ["", ".", "..", "a/b", "nul\0"])
def test_invalid_names_are_rejected(store, name):
    with pytest.raises(InvalidKeyError):
        store.set(name, "1")
    with pytest.raises(ValueError):
        store.hset("h", name, "1")


def test_lock_file_lives_beside_root(store, tmp_path):
    store.set("a", "1")
    assert (tmp_path / "db.lock").exists()
    store.flushdb()
    assert (tmp_path / "db.lock").exists()


def test_concurrent_writers_never_break_type_invariant(store, tmp_path):
    def scalar_writer():
        for i in range(50):
            try:
                store.set("x", str(i))
            except TypeConflictError:
                pass

    def hash_writer():
        for i in range(50):
            try:
                store.hset("x", f"f{i}", "v")
            except TypeConflictError:
                pass

    threads = [threading.Thread(target=scalar_writer), threading.Thread(target=hash_writer)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    is_scalar = (tmp_path / "db" / "scalars" / "x").exists()
    is_hash = (tmp_path / "db" / "hashes" / "x").exists()
    assert is_scalar != is_hash


def test_unusable_lock_file_is_a_storage_error(store, tmp_path):
    (tmp_path / "db.lock").mkdir()
    with pytest.raises(StorageIOError):
        store.set("k", "v")
    with pytest.raises(StorageIOError):
        store.hset("h", "f", "v")


def test_unusable_lock_file_only_fails_the_command(store, tmp_path):
    (tmp_path / "db.lock").mkdir()
    d = CommandDispatcher(store)
    assert d.dispatch("SET k v") == ["(nil)"]
    assert d.dispatch("DEL k") == ["(nil)"]
    reply = d.dispatch("FLUSHDB")
    assert len(reply) == 1 and reply[0].startswith("(error) ERR Storage error during 'lock'")
    assert d.dispatch("GET k") == ["(nil)"]


def test_keys_lists_a_name_once_even_if_on_disk_twice(store, tmp_path):
    (tmp_path / "db" / "scalars" / "x").write_bytes(b"1")
    (tmp_path / "db" / "hashes" / "x").mkdir()
    (tmp_path / "db" / "hashes" / "x" / "f").write_bytes(b"v")
    assert store.keys() == ["x"]
