"""Filesystem-backed key-value store.

Scalars are stored as files under `<data_dir>/scalars/<key>` and hashes as
directories of field files under `<data_dir>/hashes/<hash>/<field>`. File
contents are the raw value bytes. Writes go to a temporary file in the root
directory which is then renamed over the target, so a write either lands
completely or not at all.
"""
from __future__ import annotations
import fnmatch
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Set

from jkv_lib.exceptions import NotFoundError, StorageIOError, TypeConflictError
from .base import KVBackend, Value, check_name, to_bytes
from .locking import StoreLock

logger = logging.getLogger(__name__)

DEFAULT_DB = "jkv_db"


class FileStorageBackend(KVBackend):
    def __init__(self, data_dir: str | Path = DEFAULT_DB) -> None:
        super().__init__()
        self.data_dir = Path(data_dir)
        self.scalar_dir = self.data_dir / "scalars"
        self.hash_dir = self.data_dir / "hashes"
        self._lock = StoreLock(self.data_dir.parent / f"{self.data_dir.name}.lock")

    @property
    def location(self) -> str:
        return str(self.data_dir)

    def open(self) -> None:
        self.is_open = False
        for d in (self.scalar_dir, self.hash_dir):
            try:
                d.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageIOError("open", str(exc)) from exc
        self.is_open = True
        logger.debug("Opened file store at %s", self.data_dir)

    def flushdb(self) -> None:
        self._require_open()
        with self._lock.hold():
            try:
                shutil.rmtree(self.data_dir)
            except FileNotFoundError:
                pass
            except OSError as exc:
                logger.warning("FLUSHDB could not fully remove %s: %s", self.data_dir, exc)
                shutil.rmtree(self.data_dir, ignore_errors=True)
        logger.info("Flushed file store at %s", self.data_dir)

    def _write(self, path: Path, data: bytes, operation: str) -> None:
        try:
            fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=".tmp-")
        except OSError as exc:
            raise StorageIOError(operation, str(exc)) from exc
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as exc:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise StorageIOError(operation, str(exc)) from exc

    @staticmethod
    def _read(path: Path, name: str, operation: str) -> bytes:
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(name) from exc
        except OSError as exc:
            raise StorageIOError(operation, str(exc)) from exc

    # Scalars

    def get(self, key: str) -> bytes:
        self._require_open()
        return self._read(self.scalar_dir / check_name(key), key, "get")

    def set(self, key: str, value: Value) -> None:
        self._require_open()
        check_name(key)
        data = to_bytes(value)
        with self._lock.hold():
            if (self.hash_dir / key).is_dir():
                raise TypeConflictError(key, "hash")
            self._write(self.scalar_dir / key, data, "set")

    def delete(self, *keys: str) -> int:
        self._require_open()
        removed = 0
        with self._lock.hold():
            for key in keys:
                try:
                    (self.scalar_dir / check_name(key)).unlink()
                except FileNotFoundError as exc:
                    raise NotFoundError(key) from exc
                except OSError as exc:
                    raise StorageIOError("del", str(exc)) from exc
                removed += 1
        return removed

    def exists(self, *keys: str) -> int:
        self._require_open()
        return sum(1 for key in keys if (self.scalar_dir / check_name(key)).is_file())

    def keys(self, pattern: str = "*") -> List[str]:
        self._require_open()
        names: List[str] = []
        seen: Set[str] = set()
        for d in (self.scalar_dir, self.hash_dir):
            try:
                entries = sorted(os.listdir(d))
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StorageIOError("keys", str(exc)) from exc
            for e in entries:
                if e not in seen:
                    seen.add(e)
                    names.append(e)
        return [n for n in names if fnmatch.fnmatchcase(n, pattern)]

    # Hashes

    def hget(self, name: str, field: str) -> bytes:
        self._require_open()
        path = self.hash_dir / check_name(name) / check_name(field)
        return self._read(path, field, "hget")

    def hset(self, name: str, field: str, value: Value) -> int:
        self._require_open()
        check_name(name)
        check_name(field)
        data = to_bytes(value)
        with self._lock.hold():
            if self.exists(name):
                raise TypeConflictError(name, "scalar")
            hdir = self.hash_dir / name
            created_dir = not hdir.is_dir()
            try:
                hdir.mkdir(exist_ok=True)
            except OSError as exc:
                raise StorageIOError("hset", str(exc)) from exc
            path = hdir / field
            is_new = not path.exists()
            try:
                self._write(path, data, "hset")
            except StorageIOError:
                # never leave an empty hash behind
                if created_dir:
                    try:
                        hdir.rmdir()
                    except OSError:
                        logger.warning("Could not remove empty hash directory %s", hdir)
                raise
        return 1 if is_new else 0

    def hdel(self, name: str, field: str) -> int:
        self._require_open()
        hdir = self.hash_dir / check_name(name)
        with self._lock.hold():
            try:
                (hdir / check_name(field)).unlink()
            except FileNotFoundError as exc:
                raise NotFoundError(field) from exc
            except OSError as exc:
                raise StorageIOError("hdel", str(exc)) from exc
            try:
                remaining = os.listdir(hdir)
            except OSError as exc:
                raise StorageIOError("hdel", str(exc)) from exc
            if not remaining:
                try:
                    hdir.rmdir()
                except OSError as exc:
                    raise StorageIOError("hdel", str(exc)) from exc
                logger.debug("Removed empty hash %s", name)
        return len(remaining)

    def hkeys(self, name: str) -> List[str]:
        self._require_open()
        hdir = self.hash_dir / check_name(name)
        try:
            fields = sorted(os.listdir(hdir))
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise NotFoundError(name) from exc
        except OSError as exc:
            raise StorageIOError("hkeys", str(exc)) from exc
        if not fields:
            raise NotFoundError(name)
        return fields

    def hexists(self, name: str, field: str) -> bool:
        self._require_open()
        return (self.hash_dir / check_name(name) / check_name(field)).is_file()
