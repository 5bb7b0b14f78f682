# SPDX-License-Identifier: MIT
"""
bscf: Build System Configuration File.

bscf reads a declarative ``proj.bscf`` project description, expands it into
buildable targets, writes a command plan per target and executes those plans
incrementally, skipping targets whose inputs have not changed.
"""

from __future__ import annotations

# Re-export commonly used classes for convenient imports
from bscf.core.builder import Builder, BuildResult
from bscf.core.parser import Parser
from bscf.core.session import Session
from bscf.core.target import Target, TargetKind, TargetSet
from bscf.toolchains import find_c_toolchain

__version__ = "0.2.0"

# Public API exports
__all__ = [
    "__version__",
    # Core classes
    "Builder",
    "BuildResult",
    "Parser",
    "Session",
    "Target",
    "TargetKind",
    "TargetSet",
    # Toolchain discovery
    "find_c_toolchain",
]
