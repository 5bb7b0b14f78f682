# SPDX-License-Identifier: MIT
"""Toolchain base implementation.

A Toolchain is a coordinated set of programs that work together
(e.g., the GNU toolchain is gcc, g++ and ar with compatible flags).
Toolchains turn the structured steps of a command plan into argv
lists; they never run anything themselves.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal, NamedTuple

from bscf.configure.platform import get_platform

if TYPE_CHECKING:
    from bscf.core.target import TargetKind

logger = logging.getLogger(__name__)

# Source suffix -> compiler slot. Anything else (headers) is not compiled.
SOURCE_SUFFIX_MAP: dict[str, str] = {
    ".c": "cc",
    ".cc": "cxx",
    ".cpp": "cxx",
    ".cxx": "cxx",
    ".c++": "cxx",
}


class LinkFlag(NamedTuple):
    """One link input: a library name or a library search directory."""

    kind: Literal["lib", "libdir"]
    value: str


class BaseToolchain(ABC):
    """Abstract base class for toolchains.

    Attributes:
        name: Toolchain identifier as used by ``IF COMPILER`` and the
            CLI ('gnu', 'clang', 'msvc').
        cc: C compiler command.
        cxx: C++ compiler command.
        link: Linker command.
        ar: Archiver command.
    """

    object_suffix = ".o"
    static_lib_prefix = "lib"
    static_lib_suffix = ".a"

    def __init__(self, name: str, *, cc: str, cxx: str, link: str, ar: str) -> None:
        self.name = name
        self.cc = cc
        self.cxx = cxx
        self.link = link
        self.ar = ar
        self._configured = False

    @property
    def probe_program(self) -> str:
        """Program whose presence decides whether the toolchain is available."""
        return self.cc

    def configure(self, config: object) -> bool:
        """Check that the toolchain's compiler is installed.

        Args:
            config: Configure context.

        Returns:
            True if the toolchain is available.
        """
        if self._configured:
            return True

        from bscf.configure.config import Configure

        if not isinstance(config, Configure):
            return False

        program = config.find_program(self.probe_program)
        if program is None:
            logger.debug(
                "%s not found, %s toolchain unavailable", self.probe_program, self.name
            )
            return False
        self._configured = True
        return True

    def compiler_for(self, suffix: str) -> str | None:
        """Return the compiler command for a source suffix, or None."""
        slot = SOURCE_SUFFIX_MAP.get(suffix.lower())
        if slot == "cc":
            return self.cc
        if slot == "cxx":
            return self.cxx
        return None

    def get_compile_flags_for_target_type(self, kind: TargetKind) -> list[str]:
        """Extra compile flags required by the kind of target being built."""
        return []

    @abstractmethod
    def compile_args(
        self,
        compiler: str,
        source: str,
        obj: str,
        defines: list[str],
        includes: list[str],
        extra: list[str],
    ) -> list[str]:
        """Argv compiling one source file to one object file."""
        ...

    @abstractmethod
    def archive_args(self, output: str, objects: list[str]) -> list[str]:
        """Argv creating a static archive from objects."""
        ...

    @abstractmethod
    def link_args(
        self,
        output: str,
        objects: list[str],
        flags: list[LinkFlag],
        *,
        shared: bool,
    ) -> list[str]:
        """Argv linking objects into an executable or shared library."""
        ...

    def __repr__(self) -> str:
        name = self.__class__.__name__
        return f"{name}({self.name!r}, cc={self.cc!r}, cxx={self.cxx!r})"


class GnuStyleToolchain(BaseToolchain):
    """Shared rendering for drivers that accept GCC-style flags."""

    def get_compile_flags_for_target_type(self, kind: TargetKind) -> list[str]:
        from bscf.core.target import TargetKind

        platform = get_platform()
        if kind is TargetKind.DYNAMIC_LIBRARY and not (
            platform.is_windows or platform.is_macos
        ):
            return ["-fPIC"]
        return []

    def compile_args(
        self,
        compiler: str,
        source: str,
        obj: str,
        defines: list[str],
        includes: list[str],
        extra: list[str],
    ) -> list[str]:
        args = [compiler, "-c", source, "-o", obj]
        args.extend(f"-D{d}" for d in defines)
        args.extend(f"-I{i}" for i in includes)
        args.extend(extra)
        return args

    def archive_args(self, output: str, objects: list[str]) -> list[str]:
        return [self.ar, "rcs", output, *objects]

    def link_args(
        self,
        output: str,
        objects: list[str],
        flags: list[LinkFlag],
        *,
        shared: bool,
    ) -> list[str]:
        args = [self.link]
        if shared:
            args.append("-dynamiclib" if get_platform().is_macos else "-shared")
        args.extend(objects)
        args.extend(["-o", output])
        for flag in flags:
            if flag.kind == "libdir":
                args.append(f"-L{flag.value}")
            else:
                args.append(f"-l{flag.value}")
        return args
