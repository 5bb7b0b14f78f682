# SPDX-License-Identifier: MIT
"""Host platform detection.

The Platform record answers two questions for the rest of bscf:
which ``IF PLATFORM`` tests hold on this host, and how artifacts
are named here.
"""

from __future__ import annotations

import platform as _platform
import sys
from dataclasses import dataclass
from functools import lru_cache

# Platform identifiers accepted by ``IF [NOT] PLATFORM <os>``
PLATFORM_TOKENS = ("windows", "linux", "macos", "bsd", "unix")


@dataclass(frozen=True)
class Platform:
    """Description of the host platform.

    Attributes:
        os: Normalized OS name ('linux', 'darwin', 'windows', 'freebsd', ...).
        arch: Machine architecture ('x86_64', 'arm64', ...).
        exe_suffix: Suffix for executables ('' or '.exe').
        shared_lib_suffix: Suffix for shared libraries.
        shared_lib_prefix: Prefix for shared libraries.
    """

    os: str
    arch: str
    exe_suffix: str
    shared_lib_suffix: str
    shared_lib_prefix: str

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def is_macos(self) -> bool:
        return self.os == "darwin"

    @property
    def is_linux(self) -> bool:
        return self.os == "linux"

    @property
    def is_bsd(self) -> bool:
        return self.os.endswith("bsd")

    @property
    def is_unix(self) -> bool:
        return not self.is_windows

    def matches(self, token: str) -> bool:
        """Check an ``IF PLATFORM`` identifier against this platform.

        Args:
            token: One of PLATFORM_TOKENS.

        Returns:
            True if the platform matches.

        Raises:
            ValueError: If the token is not a known platform identifier.
        """
        checks = {
            "windows": self.is_windows,
            "linux": self.is_linux,
            "macos": self.is_macos,
            "bsd": self.is_bsd,
            "unix": self.is_unix,
        }
        if token not in checks:
            raise ValueError(f"unknown platform: {token}")
        return checks[token]


def _normalize_os(name: str) -> str:
    if name.startswith("win") or name.startswith("cygwin"):
        return "windows"
    if name.startswith("linux"):
        return "linux"
    if name.startswith("freebsd"):
        return "freebsd"
    if name.startswith("openbsd"):
        return "openbsd"
    if name.startswith("netbsd"):
        return "netbsd"
    return name


@lru_cache(maxsize=1)
def get_platform() -> Platform:
    """Detect the host platform (cached)."""
    os_name = _normalize_os(sys.platform)
    arch = _platform.machine().lower() or "unknown"
    if arch in ("amd64", "x64"):
        arch = "x86_64"
    elif arch == "aarch64":
        arch = "arm64"

    if os_name == "windows":
        return Platform(
            os=os_name,
            arch=arch,
            exe_suffix=".exe",
            shared_lib_suffix=".dll",
            shared_lib_prefix="",
        )
    return Platform(
        os=os_name,
        arch=arch,
        exe_suffix="",
        shared_lib_suffix=".dylib" if os_name == "darwin" else ".so",
        shared_lib_prefix="lib",
    )
