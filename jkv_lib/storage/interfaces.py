from typing import List, Protocol, Union, runtime_checkable


@runtime_checkable
class KVProtocol(Protocol):
    """Backend protocol mirroring `jkv_lib.storage.KVBackend`.

    Implementations should follow the semantics documented on the abstract
    base class in `jkv_lib.storage.base` (NotFoundError for missing names,
    TypeConflictError across scalar/hash namespaces, etc.).
    """

    @property
    def location(self) -> str: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    def flushdb(self) -> None: ...

    def ping(self) -> str: ...

    def get(self, key: str) -> bytes: ...

    def set(self, key: str, value: Union[bytes, str]) -> None: ...

    def delete(self, *keys: str) -> int: ...

    def exists(self, *keys: str) -> int: ...

    def keys(self, pattern: str = "*") -> List[str]: ...

    def hget(self, name: str, field: str) -> bytes: ...

    def hset(self, name: str, field: str, value: Union[bytes, str]) -> int: ...

    def hdel(self, name: str, field: str) -> int: ...

    def hkeys(self, name: str) -> List[str]: ...

    def hexists(self, name: str, field: str) -> bool: ...
