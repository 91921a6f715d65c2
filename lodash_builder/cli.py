"""
CLI entry point for the Lo-Dash builder.

Usage:
    lodash-builder [directives ...] [-o <path> | -c] [-s] [-m] [--strict-names]

    python -m lodash_builder include=each,filter,map strict -o lodash.each.js
    python -m lodash_builder backbone legacy category=utilities minus=first,last
    python -m lodash_builder exports=amd,global -c

The CLI is a thin wrapper around builder.build(). It maps argparse
options back onto the command token list; all build logic lives in
builder.py.

Exit codes: 0 success, 1 configuration error, 2 delivery failure.
"""

from __future__ import annotations

import argparse
import logging
import sys

from lodash_builder import __version__
from lodash_builder.builder import build
from lodash_builder.config import load_settings
from lodash_builder.delivery import DeliveryError

_CONFIGURATION_KINDS = ("ConfigurationError", "UnknownNameError", "ValueError", "FileNotFoundError")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    parser = argparse.ArgumentParser(
        prog="lodash-builder",
        description=(
            "Lo-Dash custom builds: select functions by name, alias, category "
            "or bundle and emit a minimal, dependency-complete module."
        ),
    )
    parser.add_argument(
        "directives",
        nargs="*",
        help="Build directives: include=, exclude=, plus=, minus=, category=, "
             "exports=, iife=, and the keywords backbone, underscore, csp, "
             "legacy, mobile, strict.",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "-o", "--output",
        default=None,
        help="Write the build to this file (default: lodash.custom.js).",
    )
    output.add_argument(
        "-c", "--stdout",
        action="store_true",
        help="Write the build to stdout instead of a file.",
    )
    parser.add_argument(
        "-s", "--silent",
        action="store_true",
        help="Suppress progress and diagnostic output.",
    )
    parser.add_argument(
        "-m", "--minify",
        action="store_true",
        help="Reduce the output (built-in stripper, or $LODASH_BUILDER_MINIFIER).",
    )
    parser.add_argument(
        "--strict-names",
        action="store_true",
        help="Fail on unknown function or category names instead of dropping them.",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    args = parser.parse_intermixed_args(argv)

    tokens = list(args.directives)
    if args.output:
        tokens += ["-o", args.output]
    if args.stdout:
        tokens.append("-c")
    if args.silent:
        tokens.append("-s")
    if args.minify:
        tokens.append("-m")
    if args.strict_names:
        tokens.append("--strict-names")

    result = build(tokens)

    kinds = {d.kind for d in result.diagnostics}
    if kinds.intersection(_CONFIGURATION_KINDS):
        sys.exit(1)
    if DeliveryError.__name__ in kinds:
        sys.exit(2)
