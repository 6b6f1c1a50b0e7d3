from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .driver import interpret


def _read_source(path: str) -> bytes:
    return Path(path).read_bytes()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bfi", description="Brainfuck interpreter")
    parser.add_argument("files", nargs="*", metavar="FILE", help="Path to the program source")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable the # instruction for debugging",
    )
    return parser


def _argument_errors(files: List[str], unknown: List[str]) -> List[str]:
    errors = [f"Unrecognized command line option '{option}'" for option in unknown]
    if len(files) > 1:
        errors.append("More than one file provided")
    return errors


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args, unknown = parser.parse_known_args(argv)

    errors = _argument_errors(args.files, unknown)
    if errors:
        for message in errors:
            print(f"error: {message}", file=sys.stderr)
        return 1
    if not args.files:
        parser.print_usage(sys.stdout)
        return 1

    try:
        source = _read_source(args.files[0])
    except OSError as exc:
        print(f"error: {exc.strerror or exc}", file=sys.stderr)
        return 1

    return 0 if interpret(source, debug=args.debug) else 1


if __name__ == "__main__":
    raise SystemExit(main())
