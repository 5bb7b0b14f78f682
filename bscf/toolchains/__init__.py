# SPDX-License-Identifier: MIT
"""Toolchain definitions (GCC, LLVM, MSVC) and toolchain discovery."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bscf.core.errors import ToolNotFoundError
from bscf.toolchains.gcc import GccToolchain
from bscf.toolchains.llvm import LlvmToolchain
from bscf.toolchains.msvc import MsvcToolchain

if TYPE_CHECKING:
    from bscf.configure.config import Configure
    from bscf.tools.toolchain import BaseToolchain

logger = logging.getLogger(__name__)

# Toolchain identifiers in order of preference
TOOLCHAIN_CLASSES: dict[str, type[BaseToolchain]] = {
    "gnu": GccToolchain,
    "clang": LlvmToolchain,
    "msvc": MsvcToolchain,
}

# Identifiers accepted by ``IF [NOT] COMPILER <toolchain>``
TOOLCHAIN_TOKENS = tuple(TOOLCHAIN_CLASSES)


def get_toolchain(name: str) -> BaseToolchain:
    """Create the toolchain with identifier ``name``.

    Raises:
        KeyError: If the identifier is unknown.
    """
    return TOOLCHAIN_CLASSES[name]()


def find_c_toolchain(config: Configure) -> BaseToolchain:
    """Select a C/C++ toolchain.

    The environment/cached preference is honoured first, then each
    toolchain is probed in order of preference. The selection is
    stored in the configuration cache.

    Args:
        config: Configure context.

    Returns:
        The first available toolchain.

    Raises:
        ToolNotFoundError: If no toolchain is installed.
    """
    preferred = config.preferred_toolchain()
    if preferred:
        if preferred in TOOLCHAIN_CLASSES:
            toolchain = config.find_toolchain(preferred)
            if toolchain is not None:
                logger.info("Using %s toolchain", toolchain.name)
                return toolchain
            logger.warning("Preferred toolchain %s is not available", preferred)
        else:
            logger.warning("Unknown toolchain %r, detecting", preferred)

    for name in TOOLCHAIN_CLASSES:
        toolchain = config.find_toolchain(name)
        if toolchain is not None:
            logger.info("Using %s toolchain", toolchain.name)
            config.set("toolchain", toolchain.name)
            return toolchain

    raise ToolNotFoundError("C compiler (gcc, clang or cl)")


__all__ = [
    "GccToolchain",
    "LlvmToolchain",
    "MsvcToolchain",
    "TOOLCHAIN_CLASSES",
    "TOOLCHAIN_TOKENS",
    "find_c_toolchain",
    "get_toolchain",
]
