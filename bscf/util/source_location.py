# SPDX-License-Identifier: MIT
"""Source locations for configuration-file diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class SourceLocation:
    """A line in a ``proj.bscf`` file.

    Attributes:
        path: The configuration file.
        lineno: 1-based line number.
    """

    path: Path
    lineno: int

    def __str__(self) -> str:
        return f"{self.path}:{self.lineno}"
