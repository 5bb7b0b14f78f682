# SPDX-License-Identifier: MIT
"""Configure context for bscf.

The Configure class provides the context for the configure phase:
program discovery, toolchain selection and a small JSON cache kept
in the project's build directory so detection is not repeated on
every invocation.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from bscf.configure.platform import get_platform

if TYPE_CHECKING:
    from bscf.tools.toolchain import BaseToolchain

logger = logging.getLogger(__name__)

# Environment variable that overrides toolchain detection
TOOLCHAIN_ENV_VAR = "BSCF_TOOLCHAIN"


@dataclass
class ProgramInfo:
    """Information about a found program.

    Attributes:
        path: Path to the program executable.
    """

    path: Path


class Configure:
    """Context for the configure phase.

    Example:
        config = Configure(build_dir=Path("proj/build"))

        gcc = config.find_program("gcc")
        if gcc:
            print(f"Found gcc at {gcc.path}")

        toolchain = config.find_toolchain("gnu")
        config.save()

    Attributes:
        platform: The detected platform.
        build_dir: Directory holding the cache file.
    """

    def __init__(
        self,
        *,
        build_dir: Path | str = "build",
        cache_file: str = "bscf_config.json",
    ) -> None:
        """Create a configure context.

        Args:
            build_dir: Directory for build outputs.
            cache_file: Name of the cache file within build_dir.
        """
        self.platform = get_platform()
        self.build_dir = Path(build_dir)
        self._cache_file = cache_file
        self._cache: dict[str, Any] = {}
        self._programs: dict[str, ProgramInfo] = {}

        self._load_cache()

    def _cache_path(self) -> Path:
        return self.build_dir / self._cache_file

    def _load_cache(self) -> None:
        """Load configuration from cache file if it exists."""
        cache_path = self._cache_path()
        if cache_path.exists():
            try:
                with open(cache_path) as f:
                    self._cache = json.load(f)
            except (json.JSONDecodeError, OSError):
                logger.warning("Ignoring unreadable config cache %s", cache_path)
                self._cache = {}

    def save(self, path: Path | None = None) -> None:
        """Save configuration to cache file.

        Args:
            path: Optional path override for cache file.
        """
        cache_path = path or self._cache_path()
        cache_path.parent.mkdir(parents=True, exist_ok=True)

        with open(cache_path, "w") as f:
            json.dump(self._cache, f, indent=2, default=str)
            f.write("\n")

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._cache.get(key, default)

    def find_program(self, name: str) -> ProgramInfo | None:
        """Find a program on PATH.

        Results are cached; a cached path that no longer exists is
        looked up again.

        Args:
            name: Program name (e.g., 'gcc', 'cl').

        Returns:
            ProgramInfo if found, None otherwise.
        """
        if name in self._programs:
            return self._programs[name]

        cache_key = f"program:{name}"
        if cache_key in self._cache:
            path = Path(self._cache[cache_key]["path"])
            if path.exists():
                info = ProgramInfo(path=path)
                self._programs[name] = info
                return info

        found = shutil.which(name)
        if found is None:
            return None
        found_path = Path(found)

        self._cache[cache_key] = {"path": str(found_path)}
        info = ProgramInfo(path=found_path)
        self._programs[name] = info
        return info

    def find_toolchain(self, kind: str) -> BaseToolchain | None:
        """Return the toolchain ``kind`` if its tools are installed.

        Args:
            kind: Toolchain identifier ('gnu', 'clang', 'msvc').

        Returns:
            The toolchain, or None if it is unknown or unavailable.
        """
        from bscf.toolchains import get_toolchain

        try:
            toolchain = get_toolchain(kind)
        except KeyError:
            return None
        if toolchain.configure(self):
            return toolchain
        return None

    def preferred_toolchain(self) -> str | None:
        """Toolchain requested by the environment or the cache.

        ``BSCF_TOOLCHAIN`` wins over the cached selection.
        """
        return os.environ.get(TOOLCHAIN_ENV_VAR) or self.get("toolchain")

    def __repr__(self) -> str:
        return (
            f"Configure(platform={self.platform.os}/{self.platform.arch}, "
            f"build_dir={self.build_dir})"
        )
