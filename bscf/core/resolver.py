# SPDX-License-Identifier: MIT
"""Dependency resolution over a TargetSet.

The Resolver answers, for each target:
1. Which targets its DEPEND edges name (and which names resolve to nothing)
2. Its effective include-path set: the include directories of every
   target it depends on, transitively, followed by its own

Include sets are memoized per target, and every walk keeps the chain of
targets currently being resolved so a circular DEPEND is reported as a
DependencyCycleError instead of recursing forever.
"""

from __future__ import annotations

import logging
from pathlib import Path

from bscf.core.errors import DependencyCycleError, MissingDependencyError
from bscf.core.target import Target, TargetSet

logger = logging.getLogger(__name__)


class Resolver:
    """Resolves dependency edges and include paths for a target set.

    Example:
        resolver = Resolver(targets)
        resolver.check()
        includes = resolver.include_dirs(targets["app"])
    """

    def __init__(self, targets: TargetSet) -> None:
        self.targets = targets
        self._includes: dict[str, list[Path]] = {}

    def dependencies(self, target: Target) -> list[Target]:
        """Direct dependencies that resolve to a target, in DEPEND order."""
        result: list[Target] = []
        for name in target.dependencies:
            dep = self.targets.get(name)
            if dep is not None:
                result.append(dep)
        return result

    def missing_dependencies(self) -> list[MissingDependencyError]:
        """Every DEPEND edge naming a target outside the set."""
        missing: list[MissingDependencyError] = []
        for target in self.targets:
            for name in target.dependencies:
                if name not in self.targets:
                    missing.append(MissingDependencyError(target.name, name))
        return missing

    def find_cycle(self) -> list[str] | None:
        """Return one dependency cycle as a list of names, or None."""
        done: set[str] = set()
        chain: list[str] = []

        def visit(target: Target) -> list[str] | None:
            if target.name in chain:
                return chain[chain.index(target.name) :] + [target.name]
            if target.name in done:
                return None
            chain.append(target.name)
            for dep in self.dependencies(target):
                cycle = visit(dep)
                if cycle is not None:
                    return cycle
            chain.pop()
            done.add(target.name)
            return None

        for target in self.targets:
            cycle = visit(target)
            if cycle is not None:
                return cycle
        return None

    def check(self) -> list[MissingDependencyError]:
        """Validate the graph.

        Missing dependencies are logged and returned; they only fail the
        targets that depend on them.

        Raises:
            DependencyCycleError: If the graph has a cycle.
        """
        cycle = self.find_cycle()
        if cycle is not None:
            raise DependencyCycleError(cycle)
        missing = self.missing_dependencies()
        for error in missing:
            logger.warning("%s", error)
        return missing

    def include_dirs(self, target: Target) -> list[Path]:
        """Effective include directories of ``target``.

        Dependencies come first, depth-first in DEPEND order, then the
        target's own directories. Each directory appears once.

        Raises:
            DependencyCycleError: If ``target`` reaches itself.
        """
        return list(self._resolve_includes(target, []))

    def _resolve_includes(self, target: Target, chain: list[str]) -> list[Path]:
        cached = self._includes.get(target.name)
        if cached is not None:
            return cached
        if target.name in chain:
            raise DependencyCycleError(
                chain[chain.index(target.name) :] + [target.name]
            )

        chain.append(target.name)
        result: list[Path] = []
        for dep in self.dependencies(target):
            for inc in self._resolve_includes(dep, chain):
                if inc not in result:
                    result.append(inc)
        chain.pop()

        for inc in target.include_dirs:
            if inc not in result:
                result.append(inc)
        self._includes[target.name] = result
        return result
