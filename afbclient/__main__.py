"""
Entry point for running afbclient as a module.

Usage:
    python -m afbclient --host localhost --port 1234 apis
"""

import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())
