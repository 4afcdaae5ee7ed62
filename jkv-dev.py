# Development client for jkv using the in-memory storage backend
import sys

from jkv_lib.cli import main

if __name__ == "__main__":
    sys.exit(main(["-m", *sys.argv[1:]]))
