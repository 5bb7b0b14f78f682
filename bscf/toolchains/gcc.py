# SPDX-License-Identifier: MIT
"""GCC toolchain: gcc, g++ and the GNU archiver."""

from __future__ import annotations

from bscf.tools.toolchain import GnuStyleToolchain


class GccToolchain(GnuStyleToolchain):
    """The GNU toolchain.

    g++ links so C++ objects pull in the C++ runtime.
    """

    def __init__(self) -> None:
        super().__init__("gnu", cc="gcc", cxx="g++", link="g++", ar="ar")
