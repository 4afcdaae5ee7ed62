"""Reply rendering in the style of the redis command line client.

Every function returns the lines to print for one reply.
"""
from typing import Iterable, List, Union

NIL = "(nil)"
WRONGTYPE = "(error) WRONGTYPE Operation against a key holding the wrong kind of value"


def _text(value: Union[bytes, str]) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def ok() -> List[str]:
    return ["OK"]


def nil() -> List[str]:
    return [NIL]


def status(text: str) -> List[str]:
    return [text]


def quoted(value: Union[bytes, str]) -> List[str]:
    return [f'"{_text(value)}"']


def integer(n: int) -> List[str]:
    return [f"(integer) {int(n)}"]


def listing(items: Iterable[Union[bytes, str]]) -> List[str]:
    """1-based enumerated list; an empty list prints nothing."""
    return [f'{i}) "{_text(v)}"' for i, v in enumerate(items, start=1)]


def error(message: str) -> List[str]:
    return [f"(error) ERR {message}"]


def wrong_type() -> List[str]:
    return [WRONGTYPE]


def wrong_arity(verb: str) -> List[str]:
    return error(f"wrong number of arguments for '{verb.lower()}' command")


def syntax_error() -> List[str]:
    return error("syntax error")


def unknown_command(verb: str, args: Iterable[str] = ()) -> List[str]:
    quoted_args = " ".join(f"'{a}'" for a in args)
    return error(f"unknown command '{verb}', with args beginning with: {quoted_args}".rstrip())
