"""Simple memory-backed key-value store

This backend keeps scalars and hashes in two dicts. Data is lost on process
exit; it is meant for development and tests.
"""
import fnmatch
from threading import RLock
from typing import Dict, List

from jkv_lib.exceptions import NotFoundError, TypeConflictError
from .base import KVBackend, Value, check_name, to_bytes


class MemoryStorage(KVBackend):
    def __init__(self):
        super().__init__()
        self._lock = RLock()
        self._scalars: Dict[str, bytes] = {}
        self._hashes: Dict[str, Dict[str, bytes]] = {}

    @property
    def location(self) -> str:
        return "memory"

    def open(self) -> None:
        self.is_open = True

    def flushdb(self) -> None:
        self._require_open()
        with self._lock:
            self._scalars.clear()
            self._hashes.clear()

    def get(self, key: str) -> bytes:
        self._require_open()
        with self._lock:
            try:
                return self._scalars[check_name(key)]
            except KeyError:
                raise NotFoundError(key) from None

    def set(self, key: str, value: Value) -> None:
        self._require_open()
        with self._lock:
            if check_name(key) in self._hashes:
                raise TypeConflictError(key, "hash")
            self._scalars[key] = to_bytes(value)

    def delete(self, *keys: str) -> int:
        self._require_open()
        removed = 0
        with self._lock:
            for key in keys:
                if self._scalars.pop(check_name(key), None) is None:
                    raise NotFoundError(key)
                removed += 1
        return removed

    def exists(self, *keys: str) -> int:
        self._require_open()
        with self._lock:
            return sum(1 for key in keys if check_name(key) in self._scalars)

    def keys(self, pattern: str = "*") -> List[str]:
        self._require_open()
        with self._lock:
            names = sorted(self._scalars) + sorted(self._hashes)
        return [n for n in names if fnmatch.fnmatchcase(n, pattern)]

    def hget(self, name: str, field: str) -> bytes:
        self._require_open()
        with self._lock:
            try:
                return self._hashes[check_name(name)][check_name(field)]
            except KeyError:
                raise NotFoundError(field) from None

    def hset(self, name: str, field: str, value: Value) -> int:
        self._require_open()
        check_name(field)
        with self._lock:
            if check_name(name) in self._scalars:
                raise TypeConflictError(name, "scalar")
            fields = self._hashes.setdefault(name, {})
            is_new = field not in fields
            fields[field] = to_bytes(value)
        return 1 if is_new else 0

    def hdel(self, name: str, field: str) -> int:
        self._require_open()
        with self._lock:
            fields = self._hashes.get(check_name(name))
            if fields is None or fields.pop(check_name(field), None) is None:
                raise NotFoundError(field)
            if not fields:
                del self._hashes[name]
            return len(fields)

    def hkeys(self, name: str) -> List[str]:
        self._require_open()
        with self._lock:
            if check_name(name) not in self._hashes:
                raise NotFoundError(name)
            return sorted(self._hashes[name])

    def hexists(self, name: str, field: str) -> bool:
        self._require_open()
        with self._lock:
            return check_name(field) in self._hashes.get(check_name(name), {})
