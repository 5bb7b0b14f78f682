# SPDX-License-Identifier: MIT
"""LLVM toolchain: clang, clang++ and ar."""

from __future__ import annotations

from bscf.tools.toolchain import GnuStyleToolchain


class LlvmToolchain(GnuStyleToolchain):
    """The Clang/LLVM toolchain (GCC-compatible driver)."""

    def __init__(self) -> None:
        super().__init__("clang", cc="clang", cxx="clang++", link="clang++", ar="ar")
