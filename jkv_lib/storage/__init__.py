"""Storage abstraction package for jkv."""
from typing import Any

from .base import KVBackend
from .file_backend import FileStorageBackend, DEFAULT_DB
from .memory_backend import MemoryStorage
from .redis_backend import RedisStorageBackend, DEFAULT_ADDR

BACKENDS = ("file", "redis", "memory")


def create_storage(backend: str = "file", **options: Any) -> KVBackend:
    """Build an unopened backend by name.

    Recognised options: `data_dir` for the file backend; `addr`, `password`
    and `db` for the redis backend.
    """
    if backend == "file":
        return FileStorageBackend(data_dir=options.get("data_dir") or DEFAULT_DB)
    if backend == "redis":
        return RedisStorageBackend(
            addr=options.get("addr") or DEFAULT_ADDR,
            password=options.get("password") or "",
            db=int(options.get("db") or 0),
        )
    if backend == "memory":
        return MemoryStorage()
    raise ValueError(f"unknown storage backend {backend!r}; expected one of {', '.join(BACKENDS)}")


__all__ = [
    "KVBackend",
    "FileStorageBackend",
    "MemoryStorage",
    "RedisStorageBackend",
    "create_storage",
    "BACKENDS",
]
