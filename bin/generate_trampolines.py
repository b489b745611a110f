#!/usr/bin/env python3
"""
WASI Trampoline Generator

Reads WITX interface descriptions and generates C source with weak
trampolines for the WASI hook functions.

Usage:
    python generate_trampolines.py wasi_snapshot_preview1.witx --abi-variant latest -o trampolines.c
    python generate_trampolines.py --witx typenames.witx --witx wasi_unstable.witx --abi-variant legacy
"""

import sys
from pathlib import Path

# Add parent directory to path so trampgen package can be found
sys.path.insert(0, str(Path(__file__).parent.parent))

from trampgen.cli import main


if __name__ == "__main__":
    sys.exit(main())
