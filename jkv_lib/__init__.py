"""jkv: a small key-value store with scalars and hashes."""

VERSION = "0.3.0"
