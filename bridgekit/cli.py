"""Command line entry point.

Usage::

    python -m bridgekit TREE.json --allowlist Foo --allowlist ns::bar \\
        --pod Point --include foo.h [--writer json] [--output out.rs]

Reads the scanner's declaration tree from JSON, runs the conversion and
writes the generated bindings to stdout or ``--output``.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from bridgekit.api import UnsafePolicy
from bridgekit.convert import BridgeConverter
from bridgekit.errors import ConvertError
from bridgekit.reader import load_module
from bridgekit.type_database import TypeDatabase
from bridgekit.writers import list_writers

LOG_LEVEL_ENV = "BRIDGEKIT_LOG_LEVEL"


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bridgekit",
        description="Convert scanned binding declarations into a pruned bridge module.",
    )
    parser.add_argument("tree", help="JSON file with the scanner's declaration tree")
    parser.add_argument(
        "--allowlist",
        action="append",
        default=[],
        metavar="NAME",
        help="Fully-qualified name to keep, with everything it needs (repeatable)",
    )
    parser.add_argument(
        "--pod",
        action="append",
        default=[],
        metavar="NAME",
        help="Type that must be passed by value (repeatable)",
    )
    parser.add_argument(
        "--include",
        action="append",
        default=[],
        metavar="HEADER",
        help="Header to include in the generated bridge (repeatable)",
    )
    parser.add_argument(
        "--exclude-utilities",
        action="store_true",
        help="Do not generate helper APIs",
    )
    parser.add_argument(
        "--unsafe-policy",
        choices=[p.value for p in UnsafePolicy],
        default=UnsafePolicy.ALL_FUNCTIONS_SAFE.value,
        help="Which generated functions are marked unsafe (default: %(default)s)",
    )
    parser.add_argument("--writer", default=None, help="Output writer (default: cxx)")
    parser.add_argument("-o", "--output", default=None, help="Write output to this file instead of stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: list[str] | None = None) -> int:
    args = build_argument_parser().parse_args(argv)
    _configure_logging(args.verbose)

    if args.writer is not None and args.writer not in list_writers():
        print(f"error: unknown writer {args.writer!r}; available: {', '.join(list_writers())}", file=sys.stderr)
        return 2

    try:
        module = load_module(args.tree)
    except (OSError, KeyError, ValueError) as e:
        print(f"error: cannot read {args.tree}: {e}", file=sys.stderr)
        return 1

    type_database = TypeDatabase(allowlist=args.allowlist, pod_requests=args.pod)
    converter = BridgeConverter(args.include, type_database)
    try:
        results = converter.convert(
            module,
            exclude_utilities=args.exclude_utilities,
            unsafe_policy=UnsafePolicy(args.unsafe_policy),
            writer=args.writer,
        )
    except ConvertError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    for note in results.diagnostics:
        print(f"warning: {note}", file=sys.stderr)

    if args.output:
        Path(args.output).write_text(results.output, encoding="utf-8")
    else:
        sys.stdout.write(results.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
