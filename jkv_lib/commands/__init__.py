"""Text command handling for jkv."""

from .dispatcher import CommandDispatcher

__all__ = ["CommandDispatcher"]
