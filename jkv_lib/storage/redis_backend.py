"""Key-value store backed by a Redis server.

Scalars map onto Redis strings and hashes onto Redis hashes. The backend
reports the same errors as the file backend: a name holding the other kind
of value is "not found" for reads and a TypeConflictError for writes.
Writes that check the type of a name first run inside a WATCH/MULTI
transaction, so the server arbitrates concurrent writers.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional

import redis

from jkv_lib.exceptions import NotFoundError, StorageIOError, TypeConflictError
from .base import KVBackend, Value, check_name, to_bytes

logger = logging.getLogger(__name__)

DEFAULT_ADDR = "localhost:6379"


def _decode(raw: Any) -> str:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8", errors="replace")
    return str(raw)


def parse_addr(addr: str) -> tuple[str, int]:
    """Split `host:port`; the port defaults to 6379."""
    host, _, port = addr.rpartition(":")
    if not host:
        return addr, 6379
    try:
        return host, int(port)
    except ValueError as exc:
        raise ValueError(f"invalid redis address {addr!r}") from exc


class RedisStorageBackend(KVBackend):
    """Parameters
    - addr: `host:port` of the server.
    - password, db: passed to the client.
    - client: an already constructed client; used instead of connecting.
    """

    def __init__(
        self,
        addr: str = DEFAULT_ADDR,
        password: str = "",
        db: int = 0,
        client: Optional[Any] = None,
    ) -> None:
        super().__init__()
        self.addr = addr
        self.password = password
        self.db = db
        self._client = client

    @property
    def location(self) -> str:
        return self.addr

    @contextmanager
    def _translate(self, operation: str) -> Iterator[None]:
        try:
            yield
        except redis.exceptions.RedisError as exc:
            raise StorageIOError(operation, str(exc)) from exc

    def _type(self, conn: Any, name: str) -> str:
        return _decode(conn.type(name))

    def open(self) -> None:
        self.is_open = False
        if self._client is None:
            host, port = parse_addr(self.addr)
            self._client = redis.Redis(
                host=host,
                port=port,
                db=self.db,
                password=self.password or None,
                decode_responses=False,
            )
        with self._translate("open"):
            self._client.ping()
        self.is_open = True
        logger.debug("Connected to redis at %s db=%d", self.addr, self.db)

    def close(self) -> None:
        super().close()
        if self._client is not None:
            try:
                self._client.close()
            except redis.exceptions.RedisError:
                logger.warning("Error while closing redis connection to %s", self.addr)

    def flushdb(self) -> None:
        self._require_open()
        try:
            self._client.flushdb()
        except redis.exceptions.RedisError as exc:
            logger.warning("FLUSHDB on %s failed: %s", self.addr, exc)

    def ping(self) -> str:
        self._require_open()
        with self._translate("ping"):
            self._client.ping()
        return "PONG"

    # Scalars

    def get(self, key: str) -> bytes:
        self._require_open()
        check_name(key)
        with self._translate("get"):
            if self._type(self._client, key) != "string":
                raise NotFoundError(key)
            value = self._client.get(key)
        if value is None:
            raise NotFoundError(key)
        return bytes(value)

    def set(self, key: str, value: Value) -> None:
        self._require_open()
        check_name(key)
        data = to_bytes(value)

        def _set(pipe: Any) -> None:
            if self._type(pipe, key) == "hash":
                raise TypeConflictError(key, "hash")
            pipe.multi()
            pipe.set(key, data)

        with self._translate("set"):
            self._client.transaction(_set, key)

    def delete(self, *keys: str) -> int:
        self._require_open()
        removed = 0
        with self._translate("del"):
            for key in keys:
                if self._type(self._client, check_name(key)) != "string":
                    raise NotFoundError(key)
                removed += int(self._client.delete(key))
        return removed

    def exists(self, *keys: str) -> int:
        self._require_open()
        with self._translate("exists"):
            return sum(1 for key in keys if self._type(self._client, check_name(key)) == "string")

    def keys(self, pattern: str = "*") -> List[str]:
        self._require_open()
        with self._translate("keys"):
            return sorted(_decode(k) for k in self._client.keys(pattern))

    # Hashes

    def hget(self, name: str, field: str) -> bytes:
        self._require_open()
        check_name(name)
        check_name(field)
        with self._translate("hget"):
            if self._type(self._client, name) != "hash":
                raise NotFoundError(name)
            value = self._client.hget(name, field)
        if value is None:
            raise NotFoundError(field)
        return bytes(value)

    def hset(self, name: str, field: str, value: Value) -> int:
        self._require_open()
        check_name(name)
        check_name(field)
        data = to_bytes(value)

        def _hset(pipe: Any) -> None:
            if self._type(pipe, name) not in ("hash", "none"):
                raise TypeConflictError(name, "scalar")
            pipe.multi()
            pipe.hset(name, field, data)

        with self._translate("hset"):
            results = self._client.transaction(_hset, name)
        return int(results[0])

    def hdel(self, name: str, field: str) -> int:
        self._require_open()
        check_name(name)
        check_name(field)
        with self._translate("hdel"):
            if self._type(self._client, name) != "hash" or not self._client.hdel(name, field):
                raise NotFoundError(field)
            # the server drops a hash together with its last field
            return int(self._client.hlen(name))

    def hkeys(self, name: str) -> List[str]:
        self._require_open()
        check_name(name)
        with self._translate("hkeys"):
            if self._type(self._client, name) != "hash":
                raise NotFoundError(name)
            return sorted(_decode(f) for f in self._client.hkeys(name))

    def hexists(self, name: str, field: str) -> bool:
        self._require_open()
        check_name(name)
        check_name(field)
        with self._translate("hexists"):
            if self._type(self._client, name) != "hash":
                return False
            return bool(self._client.hexists(name, field))
