# SPDX-License-Identifier: MIT
"""Cross-platform command helpers for bscf plans.

Plans are lists of shell command strings, so file operations that have
no portable shell spelling run through this module instead:

    python -m bscf.util.commands copy <src> <dest>
"""

from __future__ import annotations

import shlex
import shutil
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

from bscf.configure.platform import get_platform


def join_command(args: Sequence[str]) -> str:
    """Quote an argv list into one command string for the host shell."""
    if get_platform().is_windows:
        return subprocess.list2cmdline(list(args))
    return shlex.join(args)


def copy_args(src: Path | str, dest: Path | str) -> list[str]:
    """Argv that copies ``src`` to ``dest`` using this module."""
    return [sys.executable, "-m", "bscf.util.commands", "copy", str(src), str(dest)]


def copy(src: str, dest: str) -> None:
    """Copy a file, creating parent directories as needed."""
    dest_path = Path(dest)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(
            "Usage: python -m bscf.util.commands <command> [args...]", file=sys.stderr
        )
        print("Commands: copy", file=sys.stderr)
        return 1

    cmd = args[0]
    if cmd == "copy":
        if len(args) != 3:
            print(
                "Usage: python -m bscf.util.commands copy <src> <dest>",
                file=sys.stderr,
            )
            return 1
        try:
            copy(args[1], args[2])
        except OSError as e:
            print(f"copy failed: {e}", file=sys.stderr)
            return 1
        return 0

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
