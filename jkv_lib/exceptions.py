"""Custom exceptions for the jkv_lib package."""

from __future__ import annotations


class JKVError(Exception):
    """Base exception for all jkv errors."""


class StoreError(JKVError):
    """Raised when a storage backend operation fails."""


class NotOpenError(StoreError):
    """Raised when an operation is attempted on a closed store."""

    def __init__(self) -> None:
        super().__init__("DB is not open")


class NotFoundError(StoreError, KeyError):
    """Raised when a key, hash or field does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"no such key '{self.name}'"


class TypeConflictError(StoreError):
    """Raised when a name would be both a scalar and a hash."""

    def __init__(self, name: str, existing: str) -> None:
        self.name = name
        self.existing = existing
        super().__init__(f"key '{name}' exists as a {existing}")


class StorageIOError(StoreError):
    """Raised when the underlying storage fails."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        msg = f"Storage error during '{operation}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class InvalidKeyError(StoreError, ValueError):
    """Raised for names that cannot be used as keys or fields."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"invalid key name {name!r}")


class CommandError(JKVError):
    """Base exception for dispatcher-level failures."""


class ArityError(CommandError):
    def __init__(self, verb: str) -> None:
        self.verb = verb
        super().__init__(f"wrong number of arguments for '{verb.lower()}' command")


class CommandSyntaxError(CommandError):
    def __init__(self, verb: str) -> None:
        self.verb = verb
        super().__init__("syntax error")


class UnknownCommandError(CommandError):
    def __init__(self, verb: str, args: list[str] | None = None) -> None:
        self.verb = verb
        self.arguments = list(args or [])
        super().__init__(f"unknown command '{verb}'")


class StreamReadError(CommandError):
    """Raised when a value cannot be read from the bound input stream."""
