# SPDX-License-Identifier: MIT
"""Command-line interface for bscf."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from bscf.core.session import Session

# Set up logging
logger = logging.getLogger("bscf")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt)


def build_parser() -> argparse.ArgumentParser:
    from bscf import __version__

    parser = argparse.ArgumentParser(
        prog="bscf",
        description="Build C/C++ projects described by proj.bscf files.",
        epilog=(
            "Tokens: clean|c softclean|sc build|b buildcache|bc gnu|clang|msvc "
            "echo|e noecho|ne force|f noforce|nf, or a target name to rebuild."
        ),
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on directives that name a target not declared yet",
    )
    parser.add_argument(
        "project", nargs="?", default=".", help="Project directory (default: .)"
    )
    parser.add_argument(
        "tokens", nargs="*", help="Commands applied left to right (default: build)"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the bscf CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.debug)

    project = Path(args.project)
    if not project.is_dir():
        logger.error("Project directory does not exist: %s", project)
        return 1

    session = Session(project, strict=args.strict)
    return session.run(args.tokens)


if __name__ == "__main__":
    sys.exit(main())
