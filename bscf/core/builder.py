# SPDX-License-Identifier: MIT
"""Builder engine.

Executes command plans in dependency order. Each target moves through

    UNVISITED -> BUILDING -> BUILT | FAILED

and BUILT/FAILED are final for the lifetime of the Builder, so a target
shared by several dependents is built at most once. Dependencies are
built first; the first failed dependency fails the dependent without
running any of its commands, and the first command that exits non-zero
fails the target and aborts the rest of its plan.

Commands run through an injectable runner so tests never spawn
processes:

    runner(command, cwd) -> exit code
"""

from __future__ import annotations

import logging
import subprocess
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import TextIO

from bscf.core.cache import Fingerprint, IncrementalCache
from bscf.core.errors import DependencyCycleError, MissingDependencyError
from bscf.core.layout import BuildLayout
from bscf.core.plan import Plan, StepKind, read_plan
from bscf.core.target import Target, TargetSet

logger = logging.getLogger(__name__)

Runner = Callable[[str, Path], int]


def run_shell(command: str, cwd: Path) -> int:
    """Run ``command`` through the system shell in ``cwd``."""
    logger.debug("Running in %s: %s", cwd, command)
    try:
        return subprocess.run(command, shell=True, cwd=cwd).returncode
    except OSError as e:
        logger.error("Could not run %s: %s", command, e)
        return 127


class TargetState(Enum):
    UNVISITED = auto()
    BUILDING = auto()
    BUILT = auto()
    FAILED = auto()


@dataclass
class BuildResult:
    """Outcome of one or more build requests.

    Attributes:
        built: Targets whose plans ran to completion.
        skipped: Targets found up to date (or present external targets).
        failed: Targets that failed, directly or through a dependency.
        commands_run: Number of commands executed.
    """

    built: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    commands_run: int = 0

    @property
    def success(self) -> bool:
        return not self.failed


class Builder:
    """Runs the plans of a target set.

    Args:
        targets: Resolved targets.
        cache: Fingerprint store used for skip decisions.
        plans: Plans by target name. Targets without one use the plan
            file persisted in their cache directory.
        fingerprints: Current fingerprints by target name, used to
            recompile only changed sources.
        runner: Command runner.
        echo: Print each command before running it.
        force: Ignore the cache for every target.
        output: Stream for progress messages.

    Example:
        builder = Builder(targets, IncrementalCache(), plans=plans)
        result = builder.build()
        if not result.success:
            print("failed:", result.failed)
    """

    def __init__(
        self,
        targets: TargetSet,
        cache: IncrementalCache,
        *,
        plans: Mapping[str, Plan] | None = None,
        fingerprints: Mapping[str, Fingerprint] | None = None,
        runner: Runner = run_shell,
        echo: bool = False,
        force: bool = False,
        output: TextIO | None = None,
    ) -> None:
        self.targets = targets
        self.cache = cache
        self.plans = dict(plans or {})
        self.fingerprints = dict(fingerprints or {})
        self.runner = runner
        self.echo = echo
        self.force = force
        self.output = output or sys.stdout
        self.result = BuildResult()
        self._states: dict[str, TargetState] = {}
        self._chain: list[str] = []
        self._executed: set[str] = set()

    def state(self, name: str) -> TargetState:
        return self._states.get(name, TargetState.UNVISITED)

    def build(self) -> BuildResult:
        """Build every target in declaration order."""
        for target in self.targets:
            self._build(target, forced=False)
        return self.result

    def build_target(self, name: str) -> BuildResult:
        """Build one target, ignoring its cache, and its dependencies."""
        target = self.targets.get(name)
        if target is None:
            logger.error("Target %s not found", name)
            if name not in self.result.failed:
                self.result.failed.append(name)
            return self.result
        self._build(target, forced=True)
        return self.result

    def _say(self, message: str) -> None:
        print(message, file=self.output)

    def _fail(self, target: Target) -> bool:
        self._states[target.name] = TargetState.FAILED
        self.result.failed.append(target.name)
        return False

    def _build(self, target: Target, *, forced: bool) -> bool:
        state = self.state(target.name)
        if state is TargetState.BUILT:
            return True
        if state is TargetState.FAILED:
            return False
        if state is TargetState.BUILDING:
            cycle = self._chain[self._chain.index(target.name) :] + [target.name]
            raise DependencyCycleError(cycle)

        self._states[target.name] = TargetState.BUILDING
        self._chain.append(target.name)
        try:
            for dep_name in target.dependencies:
                dep = self.targets.get(dep_name)
                if dep is None:
                    logger.error("%s", MissingDependencyError(target.name, dep_name))
                    return self._fail(target)
                if not self._build(dep, forced=False):
                    logger.error(
                        "Cannot build %s: dependency %s failed", target.name, dep_name
                    )
                    return self._fail(target)
            return self._run(target, forced=forced)
        finally:
            self._chain.pop()

    def _plan_for(self, target: Target) -> Plan | None:
        plan = self.plans.get(target.name)
        if plan is not None:
            return plan
        plan_file = BuildLayout(target.root_path).plan_file(target.name)
        try:
            steps = read_plan(plan_file)
        except FileNotFoundError:
            logger.error("No plan for %s: %s does not exist", target.name, plan_file)
            return None
        return Plan(target=target, steps=steps)

    def _is_up_to_date(self, target: Target, plan: Plan) -> bool:
        if target.is_external and plan.artifact is not None and plan.artifact.exists():
            return True
        if self.force:
            return False
        if plan.artifact is not None and not plan.artifact.exists():
            return False
        if any(dep in self._executed for dep in target.dependencies):
            return False
        return self.cache.is_skippable(target)

    def _run(self, target: Target, *, forced: bool) -> bool:
        plan = self._plan_for(target)
        if plan is None:
            return self._fail(target)

        if not forced and self._is_up_to_date(target, plan):
            self._say(f"# Skipped {target.name} (up to date)")
            self._states[target.name] = TargetState.BUILT
            self.result.skipped.append(target.name)
            return True

        stale: set[Path] | None = None
        fingerprint = self.fingerprints.get(target.name)
        if not forced and not self.force and fingerprint is not None:
            stale = self.cache.stale_sources(target, fingerprint)

        self._say(f"# Building {target.name}")
        compiled: list[Path] = []
        for step in plan.steps:
            if (
                stale is not None
                and step.kind is StepKind.COMPILE
                and step.source not in stale
                and step.output is not None
                and step.output.exists()
            ):
                logger.debug("%s: reusing %s", target.name, step.output)
                continue
            command = step.render()
            if self.echo:
                self._say(command)
            code = self.runner(command, target.root_path)
            self.result.commands_run += 1
            self._executed.add(target.name)
            if code != 0:
                logger.error(
                    "Failed to build %s: command exited with %d: %s",
                    target.name,
                    code,
                    command,
                )
                # Objects from this run may not match the rolled-back cache.
                for obj in compiled:
                    obj.unlink(missing_ok=True)
                return self._fail(target)
            if step.kind is StepKind.COMPILE and step.output is not None:
                compiled.append(step.output)

        self._states[target.name] = TargetState.BUILT
        self.result.built.append(target.name)
        return True
