"""Entry point for the jkv command line client.

    python3 jkv.py SET greeting hello
    python3 jkv.py            # interactive prompt
"""
import sys

from jkv_lib.cli import main

if __name__ == "__main__":
    sys.exit(main())
