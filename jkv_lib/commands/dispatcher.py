"""Line-oriented command dispatcher.

Turns one line of text such as ``HSET user name alice`` into a call on the
active backend and renders the result the way the redis command line client
does. The dispatcher is stateless between calls and never lets a failing
command escape as an exception: every error becomes a one-line reply.
"""
from __future__ import annotations
import logging
from typing import BinaryIO, Callable, Dict, List, Optional

from jkv_lib.exceptions import (
    ArityError,
    CommandSyntaxError,
    JKVError,
    StoreError,
    StreamReadError,
    TypeConflictError,
    UnknownCommandError,
)
from jkv_lib.storage.interfaces import KVProtocol
from . import replies

logger = logging.getLogger(__name__)

# Largest value accepted from the input stream in one SET
MAX_STREAM_VALUE = 1024 * 1024


def _expect(tokens: List[str], *counts: int) -> None:
    if len(tokens) not in counts:
        raise ArityError(tokens[0])


class CommandDispatcher:
    """Dispatch text commands to a single backend.

    Parameters
    - backend: any object implementing the KV backend contract; it must be
      open before commands are dispatched.
    - read_value_from_stream: when True, ``SET key`` reads its value from
      `stream` instead of the command line.
    - stream: binary input stream used in that mode.
    """

    def __init__(
        self,
        backend: KVProtocol,
        *,
        read_value_from_stream: bool = False,
        stream: Optional[BinaryIO] = None,
    ) -> None:
        self.backend = backend
        self.read_value_from_stream = read_value_from_stream
        self.stream = stream
        self._handlers: Dict[str, Callable[[List[str]], List[str]]] = {
            "GET": self._get,
            "SET": self._set,
            "DEL": self._del,
            "EXISTS": self._exists,
            "KEYS": self._keys,
            "HGET": self._hget,
            "HSET": self._hset,
            "HDEL": self._hdel,
            "HKEYS": self._hkeys,
            "HEXISTS": self._hexists,
            "FLUSHDB": self._flushdb,
            "PING": self._ping,
        }

    @property
    def verbs(self) -> List[str]:
        return list(self._handlers)

    def dispatch(self, line: str) -> List[str]:
        """Run one command line and return the reply lines."""
        tokens = line.split()
        if not tokens:
            return []
        verb = tokens[0].upper()
        logger.debug("Dispatching %s with %d argument(s)", verb, len(tokens) - 1)
        try:
            handler = self._handlers.get(verb)
            if handler is None:
                raise UnknownCommandError(tokens[0], tokens[1:])
            return handler(tokens)
        except ArityError as exc:
            return replies.wrong_arity(exc.verb)
        except CommandSyntaxError:
            return replies.syntax_error()
        except UnknownCommandError as exc:
            return replies.unknown_command(exc.verb, exc.arguments)
        except JKVError as exc:
            logger.info("%s failed: %s", verb, exc)
            return replies.error(str(exc))

    # Scalars

    def _get(self, tokens: List[str]) -> List[str]:
        _expect(tokens, 2)
        try:
            return replies.quoted(self.backend.get(tokens[1]))
        except StoreError:
            return replies.nil()

    def _set(self, tokens: List[str]) -> List[str]:
        if self.read_value_from_stream:
            _expect(tokens, 2)
            value = self._read_stream_value()
            if value is None:
                return []
        else:
            _expect(tokens, 3)
            value = tokens[2]
        try:
            self.backend.set(tokens[1], value)
        except TypeConflictError:
            return replies.wrong_type()
        except StoreError:
            return replies.nil()
        return replies.ok()

    def _read_stream_value(self) -> Optional[bytes]:
        """Read a SET value from the bound stream.

        Returns None at end of input, which aborts the SET without a reply.
        Any other failure to obtain data raises StreamReadError.
        """
        if self.stream is None:
            raise StreamReadError("no input stream to read the value from")
        try:
            data = self.stream.read(MAX_STREAM_VALUE)
        except OSError as exc:
            raise StreamReadError(f"reading value from input: {exc}") from exc
        if data is None:
            raise StreamReadError("reading value from input: no data available")
        if not data:
            logger.debug("SET aborted at end of input")
            return None
        if isinstance(data, str):
            data = data.encode("utf-8")
        if data.endswith(b"\n"):
            data = data[:-1]
        return data

    def _del(self, tokens: List[str]) -> List[str]:
        _expect(tokens, 2)
        try:
            return replies.integer(self.backend.delete(tokens[1]))
        except StoreError:
            return replies.nil()

    def _exists(self, tokens: List[str]) -> List[str]:
        _expect(tokens, 2)
        return replies.integer(self.backend.exists(tokens[1]))

    def _keys(self, tokens: List[str]) -> List[str]:
        _expect(tokens, 2)
        try:
            return replies.listing(self.backend.keys(tokens[1]))
        except StoreError:
            return replies.nil()

    # Hashes

    def _hget(self, tokens: List[str]) -> List[str]:
        _expect(tokens, 3)
        try:
            return replies.quoted(self.backend.hget(tokens[1], tokens[2]))
        except StoreError:
            return replies.nil()

    def _hset(self, tokens: List[str]) -> List[str]:
        if len(tokens) < 4 or (len(tokens) - 2) % 2:
            raise ArityError(tokens[0])
        name = tokens[1]
        if self.backend.exists(name):
            return replies.wrong_type()
        pairs = list(zip(tokens[2::2], tokens[3::2]))
        for done, (field, value) in enumerate(pairs):
            try:
                self.backend.hset(name, field, value)
            except TypeConflictError:
                return replies.wrong_type()
            except StoreError as exc:
                # earlier pairs stay written
                return replies.error(f"{exc} (after {done} of {len(pairs)} pairs)")
        return replies.integer(len(pairs))

    def _hdel(self, tokens: List[str]) -> List[str]:
        _expect(tokens, 3)
        try:
            self.backend.hdel(tokens[1], tokens[2])
        except StoreError:
            return replies.nil()
        return replies.integer(1)

    def _hkeys(self, tokens: List[str]) -> List[str]:
        _expect(tokens, 2)
        try:
            return replies.listing(self.backend.hkeys(tokens[1]))
        except StoreError:
            return replies.nil()

    def _hexists(self, tokens: List[str]) -> List[str]:
        _expect(tokens, 3)
        return replies.integer(1 if self.backend.hexists(tokens[1], tokens[2]) else 0)

    # Server

    def _flushdb(self, tokens: List[str]) -> List[str]:
        if len(tokens) != 1:
            raise CommandSyntaxError(tokens[0])
        self.backend.flushdb()
        # recreate the (now empty) structure so the session stays usable
        self.backend.open()
        return replies.ok()

    def _ping(self, tokens: List[str]) -> List[str]:
        _expect(tokens, 1, 2)
        pong = self.backend.ping()
        if len(tokens) == 2:
            return replies.quoted(tokens[1])
        return replies.status(pong)
