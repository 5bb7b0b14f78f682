# SPDX-License-Identifier: MIT
"""Target records and the name-unique target collection.

A Target is a named buildable unit declared by a ``TARGET`` line in a
``proj.bscf``. Targets are created fresh on every invocation; nothing
about them is persisted.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from bscf.core.errors import DuplicateTargetError


class TargetKind(Enum):
    """Kind of target, keyed by its configuration-file token."""

    EXECUTABLE = "EXEC"
    STATIC_LIBRARY = "SLIB"
    DYNAMIC_LIBRARY = "DLIB"
    INTERFACE = "INTERFACE"  # No artifact, only propagates flags

    @classmethod
    def from_token(cls, token: str) -> TargetKind:
        """Parse a kind token.

        Raises:
            ValueError: If the token names no target kind.
        """
        return cls(token)

    @property
    def has_artifact(self) -> bool:
        return self is not TargetKind.INTERFACE


@dataclass
class Target:
    """A buildable unit.

    Attributes:
        kind: Executable, static library, dynamic library or interface.
        name: Name, unique within one resolved build.
        root_path: Directory of the project that declared the target.
        sources: Source files in declaration order (headers included).
        dependencies: Names of targets this one depends on, in order.
        prebuild_commands: Shell commands run before compiling.
        postbuild_commands: Shell commands run after linking.
        defines: Preprocessor macros (``NAME`` or ``NAME=VALUE``).
        libraries: External libraries to link.
        include_dirs: Include directories exposed to itself and dependents.
        is_external: Vendored/builtin target, skipped once its artifact exists.
    """

    kind: TargetKind
    name: str
    root_path: Path
    sources: list[Path] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    prebuild_commands: list[str] = field(default_factory=list)
    postbuild_commands: list[str] = field(default_factory=list)
    defines: list[str] = field(default_factory=list)
    libraries: list[str] = field(default_factory=list)
    include_dirs: list[Path] = field(default_factory=list)
    is_external: bool = False

    @property
    def config_file(self) -> Path:
        """The configuration file that declared this target."""
        return self.root_path / "proj.bscf"

    def add_include_dir(self, path: Path) -> None:
        if path not in self.include_dirs:
            self.include_dirs.append(path)

    def __repr__(self) -> str:
        deps = ", ".join(self.dependencies)
        return f"Target({self.kind.value} {self.name!r}, deps=[{deps}])"


class TargetSet:
    """An ordered collection of targets with unique names.

    Iteration yields targets in declaration order, which is also the
    order a full build visits them.
    """

    def __init__(self, targets: list[Target] | None = None) -> None:
        self._targets: dict[str, Target] = {}
        for target in targets or []:
            self.add(target)

    def add(self, target: Target) -> None:
        """Add a target.

        Raises:
            DuplicateTargetError: If the name is already taken.
        """
        if target.name in self._targets:
            raise DuplicateTargetError(target.name)
        self._targets[target.name] = target

    def get(self, name: str) -> Target | None:
        return self._targets.get(name)

    def __getitem__(self, name: str) -> Target:
        return self._targets[name]

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    def __iter__(self) -> Iterator[Target]:
        return iter(self._targets.values())

    def __len__(self) -> int:
        return len(self._targets)

    def names(self) -> list[str]:
        return list(self._targets)

    def project_roots(self) -> list[Path]:
        """Distinct declaring project directories, in first-seen order."""
        roots: list[Path] = []
        for target in self:
            if target.root_path not in roots:
                roots.append(target.root_path)
        return roots

    def __repr__(self) -> str:
        return f"TargetSet({', '.join(self._targets)})"
