"""Command line client for jkv.

Selects one backend for the lifetime of the process, then either runs the
command given as arguments or reads commands line by line from stdin,
printing a ``<location>> `` prompt before each.
"""
from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from jkv_lib import VERSION
from jkv_lib.commands import CommandDispatcher
from jkv_lib.config import Config, load_config
from jkv_lib.exceptions import StoreError
from jkv_lib.logging_config import configure_logging
from jkv_lib.storage import KVBackend, create_storage

logger = logging.getLogger(__name__)


def get_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog=prog, description="Key-value store client with redis-style commands")
    backend = p.add_mutually_exclusive_group()
    backend.add_argument("-r", dest="backend", action="store_const", const="redis", help="Use a Redis server")
    backend.add_argument("-f", dest="backend", action="store_const", const="file", help="Use the filesystem store")
    backend.add_argument("-m", dest="backend", action="store_const", const="memory", help="Use a throwaway in-memory store")
    p.add_argument("-x", dest="stdin_value", action="store_true", help="Get value from stdin")
    p.add_argument("-v", dest="version", action="store_true", help="Print version")
    p.add_argument("--config", type=Path, default=None, help="YAML config file (default: ./jkv.yml)")
    p.add_argument("--db", dest="data_dir", default=None, help="Directory of the filesystem store")
    p.add_argument("--addr", default=None, help="Redis address as host:port")
    p.add_argument("command", nargs=argparse.REMAINDER, help="Command to run; omit for a prompt")
    return p


def parse_args(argv: Optional[Iterable[str]] = None, prog: Optional[str] = None) -> argparse.Namespace:
    """Parse client args from argv.

    Returns a Namespace with attributes: backend, stdin_value, version,
    config, data_dir, addr, command
    """
    parser = get_parser(prog)
    if argv is not None:
        argv = list(argv)
    return parser.parse_args(argv)


def select_backend(args: argparse.Namespace, config: Config, prog: str) -> str:
    """Explicit flag first, then the program name, then the config file."""
    if args.backend:
        return args.backend
    if prog == "redis-cli":
        return "redis"
    return config.backend


def _emit(lines: List[str], out: TextIO) -> None:
    for line in lines:
        out.write(line + "\n")
    out.flush()


def run_prompt(dispatcher: CommandDispatcher, location: str, stdin: TextIO, out: TextIO) -> int:
    prompt = f"{location}> "
    out.write(prompt)
    out.flush()
    try:
        for line in stdin:
            _emit(dispatcher.dispatch(line), out)
            out.write(prompt)
            out.flush()
    except OSError as e:
        print("Error reading input:", e, file=sys.stderr)
        return 1
    out.write("\n")
    return 0


def open_backend(name: str, config: Config, args: argparse.Namespace) -> KVBackend:
    options = config.storage_options()
    if args.data_dir:
        options["data_dir"] = args.data_dir
    if args.addr:
        options["addr"] = args.addr
    backend = create_storage(name, **options)
    backend.open()
    return backend


def main(
    argv: Optional[Iterable[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    prog = Path(sys.argv[0]).name
    args = parse_args(argv, prog=prog)
    stdin = stdin or sys.stdin
    out = stdout or sys.stdout

    if args.version:
        out.write(VERSION + "\n")
        return 0

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(e, file=sys.stderr)
        return 2
    configure_logging(config.log_level)

    name = select_backend(args, config, prog)
    try:
        backend = open_backend(name, config, args)
    except ValueError as e:
        print(e, file=sys.stderr)
        return 2
    except StoreError as e:
        print(f"Could not open {name} store: {e}", file=sys.stderr)
        return 1
    logger.info("Using %s store at %s", name, backend.location)

    dispatcher = CommandDispatcher(
        backend,
        read_value_from_stream=args.stdin_value,
        stream=getattr(stdin, "buffer", stdin),
    )
    try:
        if args.command:
            _emit(dispatcher.dispatch(" ".join(args.command)), out)
            return 0
        return run_prompt(dispatcher, backend.location, stdin, out)
    finally:
        backend.close()
