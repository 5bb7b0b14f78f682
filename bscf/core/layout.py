# SPDX-License-Identifier: MIT
"""Build directory layout of a project.

Every project keeps its own build tree next to its proj.bscf:

    <root>/build/obj/<target>/   object files
    <root>/build/bin/            executables and shared libraries
    <root>/build/lib/            static archives
    <root>/build/cache/          plan and fingerprint files
"""

from __future__ import annotations

from pathlib import Path

PLAN_SUFFIX = ".target"
FINGERPRINT_SUFFIX = ".fingerprint"
PREVIOUS_SUFFIX = ".prev"


class BuildLayout:
    """Paths inside one project's build directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.build_dir = root / "build"
        self.obj_root = self.build_dir / "obj"
        self.bin_dir = self.build_dir / "bin"
        self.lib_dir = self.build_dir / "lib"
        self.cache_dir = self.build_dir / "cache"

    def obj_dir(self, target_name: str) -> Path:
        return self.obj_root / target_name

    def plan_file(self, target_name: str) -> Path:
        return self.cache_dir / f"{target_name}{PLAN_SUFFIX}"

    def fingerprint_file(self, target_name: str) -> Path:
        return self.cache_dir / f"{target_name}{FINGERPRINT_SUFFIX}"

    def previous_fingerprint_file(self, target_name: str) -> Path:
        return self.cache_dir / f"{target_name}{FINGERPRINT_SUFFIX}{PREVIOUS_SUFFIX}"

    def object_name(self, source: Path, object_suffix: str) -> str:
        """Flatten a source path into an object file name.

        Each ``_`` inside a path component is doubled and the components
        are joined with a single ``_``, so distinct sources never share an
        object and the name maps back to one path: ``src/net/io.c`` ->
        ``src_net_io.c.o``, ``src/a_b.c`` -> ``src_a__b.c.o``.
        Sources outside the root keep only their file name.
        """
        try:
            rel = source.relative_to(self.root)
        except ValueError:
            rel = Path(source.name)
        return "_".join(part.replace("_", "__") for part in rel.parts) + object_suffix

    def __repr__(self) -> str:
        return f"BuildLayout({self.root})"
