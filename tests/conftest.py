# SPDX-License-Identifier: MIT
"""Shared fixtures for bscf tests."""

from __future__ import annotations

import io
import shlex
import shutil
from collections.abc import Callable
from pathlib import Path

import pytest

from bscf.configure.platform import Platform
from bscf.core.session import Session
from bscf.toolchains.gcc import GccToolchain

LINUX = Platform(
    os="linux",
    arch="x86_64",
    exe_suffix="",
    shared_lib_suffix=".so",
    shared_lib_prefix="lib",
)

WINDOWS = Platform(
    os="windows",
    arch="x86_64",
    exe_suffix=".exe",
    shared_lib_suffix=".dll",
    shared_lib_prefix="",
)


class RecordingRunner:
    """Command runner that records commands and fakes their outputs.

    Compile, archive and link commands create their output file; copy
    commands copy. A command containing any of ``fail_on`` exits 1.
    """

    def __init__(self, fail_on: tuple[str, ...] = ()) -> None:
        self.commands: list[tuple[str, Path]] = []
        self.fail_on = fail_on

    def __call__(self, command: str, cwd: Path) -> int:
        self.commands.append((command, cwd))
        if any(marker in command for marker in self.fail_on):
            return 1
        argv = shlex.split(command)
        if "bscf.util.commands" in argv:
            dest = Path(argv[-1])
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(argv[-2], dest)
            return 0
        output = None
        if "-o" in argv:
            output = argv[argv.index("-o") + 1]
        elif argv[0] == "ar":
            output = argv[2]
        if output is not None:
            Path(output).parent.mkdir(parents=True, exist_ok=True)
            Path(output).write_text(command)
        return 0

    @property
    def lines(self) -> list[str]:
        return [command for command, _ in self.commands]

    def compiled(self) -> list[str]:
        """File names of the sources compiled so far."""
        names = []
        for command in self.lines:
            argv = shlex.split(command)
            if "-c" in argv:
                names.append(Path(argv[argv.index("-c") + 1]).name)
        return names

    def clear(self) -> None:
        self.commands.clear()


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def write_project() -> Callable[..., Path]:
    """Create a project directory with a proj.bscf and source files."""

    def _write(root: Path, config: str, files: dict[str, str] | None = None) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        (root / "proj.bscf").write_text(config)
        for name, content in (files or {}).items():
            path = root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return root

    return _write


@pytest.fixture
def make_session(runner: RecordingRunner) -> Callable[..., Session]:
    """Session wired to the recording runner, gcc and no fetching."""

    def _make(project: Path, **kwargs) -> Session:
        kwargs.setdefault("toolchain", GccToolchain())
        kwargs.setdefault("runner", runner)
        kwargs.setdefault("fetch", None)
        kwargs.setdefault("output", io.StringIO())
        return Session(project, **kwargs)

    return _make
