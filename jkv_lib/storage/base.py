"""Storage backend interface definitions.

Defines the KVBackend abstract class every store implements. A store holds
two kinds of values under one root: scalars (a key mapped to an opaque byte
string) and hashes (a key mapped to a set of field/value pairs). A name is
never a scalar and a hash at the same time.

Methods raise :class:`~jkv_lib.exceptions.NotOpenError` while the store is
closed, :class:`~jkv_lib.exceptions.NotFoundError` for missing names and
:class:`~jkv_lib.exceptions.StorageIOError` when the underlying storage
fails. They never terminate the process.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Union

from jkv_lib.exceptions import InvalidKeyError, NotOpenError

Value = Union[bytes, str]


def to_bytes(value: Value) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return str(value).encode("utf-8")


def check_name(name: str) -> str:
    """Reject names that cannot map onto a single storage entry."""
    if not name or name in (".", "..") or "/" in name or "\0" in name:
        raise InvalidKeyError(name)
    return name


class KVBackend(ABC):
    """Abstract key-value backend.

    The open/closed state lives on the instance and only changes through
    `open` and `close`.
    """

    def __init__(self) -> None:
        self.is_open = False

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable root of the store (directory or address)."""

    def _require_open(self) -> None:
        if not self.is_open:
            raise NotOpenError()

    # Lifecycle

    @abstractmethod
    def open(self) -> None:
        """Prepare the underlying storage and mark the store open.

        Safe to call on an already open store; recreates missing structure.
        """

    def close(self) -> None:
        """Mark the store closed. Stored data is left untouched."""
        self.is_open = False

    @abstractmethod
    def flushdb(self) -> None:
        """Delete every scalar and hash.

        Failures while removing data are logged, not raised: callers must not
        rely on this method to report partial failure. The open/closed state
        is not changed.
        """

    def ping(self) -> str:
        self._require_open()
        return "PONG"

    # Scalars

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the value of scalar `key`."""

    @abstractmethod
    def set(self, key: str, value: Value) -> None:
        """Create or overwrite scalar `key`.

        Raises TypeConflictError if `key` currently names a hash.
        """

    @abstractmethod
    def delete(self, *keys: str) -> int:
        """Delete scalar keys in order and return how many were removed.

        Stops at the first missing key with NotFoundError.
        """

    @abstractmethod
    def exists(self, *keys: str) -> int:
        """Return how many of `keys` exist as scalars."""

    @abstractmethod
    def keys(self, pattern: str = "*") -> List[str]:
        """Return scalar and hash names matching the glob `pattern`."""

    # Hashes

    @abstractmethod
    def hget(self, name: str, field: str) -> bytes:
        """Return the value of `field` in hash `name`."""

    @abstractmethod
    def hset(self, name: str, field: str, value: Value) -> int:
        """Set `field` in hash `name`, creating the hash when absent.

        Returns 1 when the field is new and 0 when it was overwritten. Raises
        TypeConflictError if `name` currently names a scalar.
        """

    @abstractmethod
    def hdel(self, name: str, field: str) -> int:
        """Delete `field` and return the number of fields left.

        A hash whose last field is deleted ceases to exist.
        """

    @abstractmethod
    def hkeys(self, name: str) -> List[str]:
        """Return the field names of hash `name`."""

    @abstractmethod
    def hexists(self, name: str, field: str) -> bool:
        """Return True if `field` exists in hash `name`."""
