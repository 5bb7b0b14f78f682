# SPDX-License-Identifier: MIT
"""Configuration parser and target expander.

Reads a project's ``proj.bscf`` and, recursively, every sub-project it
includes, producing one flat, ordered TargetSet.

The file format is line oriented: one directive per line, tokens split
on whitespace, ``#`` starts a comment that runs to the end of the line.

    TARGET <EXEC|SLIB|DLIB|INTERFACE> <name> [sources...|ALL|GLOB dir|RECURSE dir]
    INCLUDE <subdir>                  # splice lib/<subdir>/proj.bscf
    GITINCLUDE <url> <name> [branch]  # fetch into lib/<name>, then splice
    BUILTIN <name>                    # fetch a registry project, then splice
    DEPEND <target> <dep>
    PREBUILD <target> <cmd...>
    POSTBUILD <target> <cmd...>
    DEFINE <target> <macro[=value]>
    LIB <target> <libname>
    INCDIR <target> <dir>
    ALLOWSKIP <target>
    IF [NOT] PLATFORM <os> | IF [NOT] COMPILER <toolchain>
    ENDIF

Directives that modify a target only see targets already declared in the
same file (including targets spliced in by an earlier INCLUDE), so a
TARGET line must come before any directive that names it.

Parsing never spawns processes itself. Remote sub-projects are retrieved
through the ``fetch`` collaborator in the ParseContext; without one, only
already-present copies are spliced.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from bscf.configure.platform import PLATFORM_TOKENS, Platform, get_platform
from bscf.core.errors import (
    DuplicateTargetError,
    FetchError,
    ForwardReferenceError,
    IncludeCycleError,
    MissingConfigError,
)
from bscf.core.target import Target, TargetKind, TargetSet
from bscf.packages.builtins import BUILTINS, Builtin, Fetcher, get_builtin
from bscf.toolchains import TOOLCHAIN_TOKENS
from bscf.util.source_location import SourceLocation

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "proj.bscf"

# Files picked up by ALL, GLOB and RECURSE. Headers are kept as sources so
# they are fingerprinted; the planner never compiles them.
SOURCE_EXTENSIONS = frozenset(
    {".c", ".cc", ".cpp", ".cxx", ".c++", ".h", ".hh", ".hpp", ".hxx", ".inl"}
)

def scan_sources(directory: Path, *, recursive: bool) -> list[Path]:
    """List source files in ``directory``, sorted for a stable expansion.

    Args:
        directory: Directory to scan.
        recursive: Descend into sub-directories.

    Returns:
        Matching files, or an empty list if the directory does not exist.
    """
    if not directory.is_dir():
        return []
    candidates = directory.rglob("*") if recursive else directory.iterdir()
    return sorted(
        p for p in candidates if p.is_file() and p.suffix.lower() in SOURCE_EXTENSIONS
    )


@dataclass(frozen=True)
class ParseContext:
    """Environment the configuration is evaluated against.

    Attributes:
        platform: Host platform for ``IF PLATFORM`` tests.
        toolchain: Selected toolchain identifier for ``IF COMPILER`` tests.
        fetch: Version-control collaborator used by GITINCLUDE and BUILTIN.
        strict: Raise ForwardReferenceError instead of warning.
    """

    platform: Platform = field(default_factory=get_platform)
    toolchain: str = "gnu"
    fetch: Fetcher | None = None
    strict: bool = False


@dataclass
class _Line:
    location: SourceLocation
    keyword: str
    args: list[str]
    rest: str

    def rest_after_first(self) -> str:
        """Text following the first argument (for command/macro directives)."""
        parts = self.rest.split(None, 1)
        return parts[1].strip() if len(parts) == 2 else ""


@dataclass
class _FileState:
    """Per-file parsing state."""

    project_dir: Path
    lines: list[_Line]
    external: bool
    pos: int = 0
    targets: list[Target] = field(default_factory=list)
    index: dict[str, Target] = field(default_factory=dict)

    def next_line(self) -> _Line | None:
        if self.pos >= len(self.lines):
            return None
        line = self.lines[self.pos]
        self.pos += 1
        return line

    def splice(self, targets: list[Target]) -> None:
        for target in targets:
            self.targets.append(target)
            self.index[target.name] = target


def read_config(project_dir: Path) -> Iterator[_Line]:
    """Yield the meaningful lines of ``project_dir/proj.bscf``.

    Comments and blank lines are dropped.

    Raises:
        MissingConfigError: If the file does not exist.
    """
    config = project_dir / CONFIG_FILE_NAME
    if not config.is_file():
        raise MissingConfigError(str(config))
    with open(config, encoding="utf-8", errors="replace") as f:
        for lineno, raw in enumerate(f, start=1):
            text = raw.split("#", 1)[0].strip()
            if not text:
                continue
            keyword, *tail = text.split(None, 1)
            rest = tail[0].strip() if tail else ""
            yield _Line(
                location=SourceLocation(config, lineno),
                keyword=keyword,
                args=rest.split(),
                rest=rest,
            )


class Parser:
    """Expands a project tree into a TargetSet.

    Example:
        parser = Parser(ParseContext(toolchain="gnu"))
        targets = parser.parse(Path("myproj"))
        for target in targets:
            print(target.name, target.sources)

    The keyword table is built once per parser and cannot be modified.
    """

    def __init__(
        self,
        context: ParseContext | None = None,
        *,
        builtins: Mapping[str, Builtin] = BUILTINS,
    ) -> None:
        self.context = context or ParseContext()
        self._builtins = builtins
        self._handlers: Mapping[str, Callable[[_FileState, _Line], None]] = (
            MappingProxyType(
                {
                    "TARGET": self._target,
                    "INCLUDE": self._include,
                    "GITINCLUDE": self._gitinclude,
                    "BUILTIN": self._builtin,
                    "DEPEND": self._depend,
                    "PREBUILD": self._prebuild,
                    "POSTBUILD": self._postbuild,
                    "DEFINE": self._define,
                    "LIB": self._lib,
                    "INCDIR": self._incdir,
                    "ALLOWSKIP": self._allowskip,
                    "IF": self._if,
                    "ENDIF": self._endif,
                }
            )
        )
        self._targets = TargetSet()
        self._stack: list[Path] = []
        self._parsed: dict[Path, list[Target]] = {}

    @property
    def config_files(self) -> list[Path]:
        """Configuration files read by the last parse()."""
        return [d / CONFIG_FILE_NAME for d in self._parsed]

    def parse(self, project_dir: Path | str) -> TargetSet:
        """Parse a project and everything it includes.

        Args:
            project_dir: Root project directory.

        Returns:
            All targets, in declaration order with sub-projects spliced
            in at their INCLUDE points.

        Raises:
            MissingConfigError: If the root project has no proj.bscf.
            IncludeCycleError: If a project includes itself.
            FetchError: If a remote sub-project cannot be retrieved.
        """
        self._targets = TargetSet()
        self._stack = []
        self._parsed = {}
        root = Path(project_dir).resolve()
        self._parse_project(root, external=False)
        logger.debug("Parsed %d target(s) from %s", len(self._targets), root)
        return self._targets

    def _parse_project(self, project_dir: Path, *, external: bool) -> list[Target]:
        state = _FileState(
            project_dir=project_dir,
            lines=list(read_config(project_dir)),
            external=external,
        )
        self._stack.append(project_dir)
        try:
            while (line := state.next_line()) is not None:
                handler = self._handlers.get(line.keyword)
                if handler is None:
                    logger.warning(
                        "%s: unknown directive %r ignored", line.location, line.keyword
                    )
                    continue
                handler(state, line)
        finally:
            self._stack.pop()
        self._parsed[project_dir] = state.targets
        return state.targets

    # Target lookup

    def _lookup(self, state: _FileState, name: str, line: _Line) -> Target | None:
        target = state.index.get(name)
        if target is not None:
            return target
        if self.context.strict:
            raise ForwardReferenceError(name, line.location)
        logger.warning(
            "%s: %s names undeclared target %r; directive ignored",
            line.location,
            line.keyword,
            name,
        )
        return None

    def _require_args(self, line: _Line, count: int, usage: str) -> bool:
        if len(line.args) < count:
            logger.warning("%s: usage: %s %s", line.location, line.keyword, usage)
            return False
        return True

    # Directive handlers

    def _target(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 2, "<kind> <name> [sources...]"):
            return
        kind_token, name = line.args[0], line.args[1]
        try:
            kind = TargetKind.from_token(kind_token)
        except ValueError:
            logger.warning("%s: invalid target type %r", line.location, kind_token)
            return

        root = state.project_dir
        target = Target(
            kind=kind, name=name, root_path=root, is_external=state.external
        )
        tokens = line.args[2:]
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if token == "ALL":
                src_dir = root / "src"
                target.add_include_dir(src_dir)
                target.sources.extend(scan_sources(src_dir, recursive=True))
                break
            if token in ("GLOB", "RECURSE"):
                if i + 1 >= len(tokens):
                    logger.warning("%s: %s needs a directory", line.location, token)
                    break
                directory = root / tokens[i + 1]
                if not directory.is_dir():
                    logger.warning(
                        "%s: directory %s does not exist", line.location, directory
                    )
                target.add_include_dir(directory)
                target.sources.extend(
                    scan_sources(directory, recursive=token == "RECURSE")
                )
                i += 2
                continue
            target.sources.append(root / token)
            i += 1

        try:
            self._targets.add(target)
        except DuplicateTargetError:
            logger.warning(
                "%s: target %r is already declared; declaration ignored",
                line.location,
                name,
            )
            return
        state.splice([target])

    def _include(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 1, "<subdir>"):
            return
        sub = state.project_dir / "lib" / line.args[0]
        self._splice_project(state, sub, line, external=state.external)

    def _gitinclude(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 2, "<url> <name> [branch]"):
            return
        url, name = line.args[0], line.args[1]
        branch = line.args[2] if len(line.args) > 2 else None
        destination = state.project_dir / "lib" / name
        fetch = self.context.fetch
        if fetch is not None:
            logger.info("Fetching %s into %s", url, destination)
            if not fetch(url, destination, branch) and not (
                destination / CONFIG_FILE_NAME
            ).is_file():
                raise FetchError(f"could not fetch {url}", line.location)
        elif not destination.is_dir():
            logger.warning(
                "%s: %s is not present and fetching is disabled", line.location, name
            )
            return
        self._splice_project(state, destination, line, external=True)

    def _builtin(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 1, "<name>"):
            return
        name = line.args[0]
        if name not in self._builtins:
            raise FetchError(f"unknown builtin {name!r}", line.location)
        destination = state.project_dir / "lib" / name
        fetch = self.context.fetch
        if fetch is not None:
            if not get_builtin(self._builtins[name], name, state.project_dir, fetch):
                raise FetchError(f"builtin {name} failed", line.location)
        elif not destination.is_dir():
            logger.warning(
                "%s: builtin %s is not present and fetching is disabled",
                line.location,
                name,
            )
            return
        self._splice_project(state, destination, line, external=True)

    def _splice_project(
        self, state: _FileState, project_dir: Path, line: _Line, *, external: bool
    ) -> None:
        project_dir = project_dir.resolve()
        if project_dir in self._stack:
            chain = [str(p) for p in self._stack[self._stack.index(project_dir) :]]
            chain.append(str(project_dir))
            raise IncludeCycleError(chain, line.location)
        if project_dir in self._parsed:
            logger.debug("%s: %s already included", line.location, project_dir)
            state.splice(self._parsed[project_dir])
            return
        if not (project_dir / CONFIG_FILE_NAME).is_file():
            logger.warning(
                "%s: %s has no %s; include ignored",
                line.location,
                project_dir,
                CONFIG_FILE_NAME,
            )
            return
        state.splice(self._parse_project(project_dir, external=external))

    def _depend(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 2, "<target> <dependency>"):
            return
        target = self._lookup(state, line.args[0], line)
        if target is not None and line.args[1] not in target.dependencies:
            target.dependencies.append(line.args[1])

    def _prebuild(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 2, "<target> <command>"):
            return
        target = self._lookup(state, line.args[0], line)
        if target is not None:
            target.prebuild_commands.append(line.rest_after_first())

    def _postbuild(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 2, "<target> <command>"):
            return
        target = self._lookup(state, line.args[0], line)
        if target is not None:
            target.postbuild_commands.append(line.rest_after_first())

    def _define(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 2, "<target> <macro[=value]>"):
            return
        target = self._lookup(state, line.args[0], line)
        if target is not None:
            target.defines.append(line.rest_after_first())

    def _lib(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 2, "<target> <libname>"):
            return
        target = self._lookup(state, line.args[0], line)
        if target is not None:
            target.libraries.append(line.args[1])

    def _incdir(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 2, "<target> <dir>"):
            return
        target = self._lookup(state, line.args[0], line)
        if target is not None:
            target.add_include_dir(state.project_dir / line.args[1])

    def _allowskip(self, state: _FileState, line: _Line) -> None:
        if not self._require_args(line, 1, "<target>"):
            return
        target = self._lookup(state, line.args[0], line)
        if target is not None:
            target.is_external = True

    def _if(self, state: _FileState, line: _Line) -> None:
        if not self._condition_holds(line):
            self._skip_block(state, line)

    def _endif(self, state: _FileState, line: _Line) -> None:
        pass

    # Conditionals

    def _condition_holds(self, line: _Line) -> bool:
        """Evaluate ``IF [NOT] PLATFORM x`` / ``IF [NOT] COMPILER y``.

        Unknown tests and unknown identifiers are never taken, with or
        without NOT.
        """
        args = line.args
        negate = bool(args) and args[0] == "NOT"
        if negate:
            args = args[1:]
        if len(args) < 2:
            logger.warning("%s: invalid IF: %r", line.location, line.rest)
            return False

        test, value = args[0], args[1]
        if test == "PLATFORM":
            if value not in PLATFORM_TOKENS:
                logger.warning("%s: invalid platform: %s", line.location, value)
                return False
            result = self.context.platform.matches(value)
        elif test == "COMPILER":
            if value not in TOOLCHAIN_TOKENS:
                logger.warning("%s: invalid compiler: %s", line.location, value)
                return False
            result = value == self.context.toolchain
        else:
            logger.warning("%s: invalid IF test: %s", line.location, test)
            return False
        return result != negate

    def _skip_block(self, state: _FileState, line: _Line) -> None:
        """Skip to the ENDIF matching the IF on ``line``."""
        depth = 1
        while (skipped := state.next_line()) is not None:
            if skipped.keyword == "IF":
                depth += 1
            elif skipped.keyword == "ENDIF":
                depth -= 1
                if depth == 0:
                    return
        logger.warning("%s: IF without matching ENDIF", line.location)
