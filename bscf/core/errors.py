# SPDX-License-Identifier: MIT
"""Custom exceptions for bscf.

All bscf exceptions inherit from BscfError, which includes
optional source location information for better error messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bscf.util.source_location import SourceLocation


class BscfError(Exception):
    """Base class for all bscf exceptions.

    Attributes:
        message: The error message.
        location: Optional source location where the error occurred.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.message = message
        self.location = location
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class ConfigureError(BscfError):
    """Error during the configure phase.

    Raised when the project cannot be set up at all: no configuration
    file for the root project, no usable toolchain.
    """


class MissingConfigError(ConfigureError):
    """The project directory has no proj.bscf.

    Attributes:
        path: The configuration file that was expected.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"proj.bscf does not exist: {path}")


class ToolNotFoundError(ConfigureError):
    """Required tool was not found.

    Attributes:
        tool: The name of the tool that was not found.
    """

    def __init__(
        self,
        tool: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.tool = tool
        super().__init__(f"tool not found: {tool}", location)


class ParseError(BscfError):
    """Error while expanding a configuration file."""


class ForwardReferenceError(ParseError):
    """A directive names a target that has not been declared yet.

    Only raised by a strict parser; the default parser warns instead.

    Attributes:
        target: The unknown target name.
    """

    def __init__(
        self,
        target: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.target = target
        super().__init__(f"target {target!r} is not declared yet", location)


class IncludeCycleError(ParseError):
    """A project includes itself, directly or through sub-projects.

    Attributes:
        chain: The project directories forming the cycle.
    """

    def __init__(
        self,
        chain: list[str],
        location: SourceLocation | None = None,
    ) -> None:
        self.chain = chain
        cycle_str = " -> ".join(chain)
        super().__init__(f"cyclic include: {cycle_str}", location)


class DependencyCycleError(BscfError):
    """Circular dependency detected between targets.

    Attributes:
        cycle: The target names forming the cycle.
    """

    def __init__(
        self,
        cycle: list[str],
        location: SourceLocation | None = None,
    ) -> None:
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"dependency cycle: {cycle_str}", location)


class MissingDependencyError(BscfError):
    """A DEPEND edge names a target that is not in the resolved set.

    Attributes:
        target: The depending target.
        dependency: The name that could not be resolved.
    """

    def __init__(self, target: str, dependency: str) -> None:
        self.target = target
        self.dependency = dependency
        super().__init__(
            f"target {target!r} depends on unknown target {dependency!r}"
        )


class FetchError(BscfError):
    """A remote sub-project could not be retrieved."""


class DuplicateTargetError(ParseError):
    """A target name is already taken in the resolved set.

    Attributes:
        target: The duplicated name.
    """

    def __init__(
        self,
        target: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.target = target
        super().__init__(f"target {target!r} is already declared", location)
