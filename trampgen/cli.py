"""Command line front end: WITX files in, trampoline C source out"""

import argparse
import sys
import time
from pathlib import Path

from .errors import AbiVariantError, TrampgenError
from .parser import load
from .trampoline_generator import generate
from .types import AbiVariant


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trampgen",
        description="Generate weak WASI trampolines from WITX",
    )
    parser.add_argument("witx_files", nargs="*", help="WITX files (positional)")
    parser.add_argument("--witx", action="append", default=[], help="WITX file (alternative, repeatable)")
    parser.add_argument("--abi-variant", default="latest",
                        help="Symbol naming: 'latest' (__imported_*) or 'legacy' (__wasi_*)")
    parser.add_argument("--output", "-o", default="", help="Output C file (default: stdout)")
    return parser


def main(argv=None) -> int:
    start_time = time.perf_counter()

    parser = build_parser()
    args = parser.parse_args(argv)

    # Support both positional and --witx arguments
    witx_files = args.witx_files + args.witx
    if not witx_files:
        parser.error("at least one WITX file is required (positional or --witx)")

    try:
        variant = AbiVariant.parse(args.abi_variant)
    except AbiVariantError as e:
        parser.error(str(e))

    try:
        source = generate(load(witx_files), variant)
    except TrampgenError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.output:
        path = Path(args.output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source)
        print(f"Generated: {path}", file=sys.stderr)
    else:
        sys.stdout.write(source)

    elapsed = time.perf_counter() - start_time
    print(f"Generation completed in {elapsed*1000:.2f} ms", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
