# SPDX-License-Identifier: MIT
"""Build session: the apply phase and the command-token state machine.

A Session is created for one project directory and fed the CLI tokens
left to right. Toolchain, echo and force tokens change the state used by
every later token; action tokens parse the project afresh, plan it and
act on the result:

    session = Session(Path("myproj"))
    status = session.run(["clang", "echo", "build"])

Planning is pure. Applying a plan is the only place that touches the
build tree before execution: it creates the directories the plan needs,
writes the plan file and rotates the target's fingerprint.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from bscf.configure.config import Configure
from bscf.configure.platform import get_platform
from bscf.core.builder import Builder, BuildResult, Runner, TargetState, run_shell
from bscf.core.cache import Fingerprint, IncrementalCache, compute_fingerprint
from bscf.core.errors import BscfError
from bscf.core.layout import BuildLayout
from bscf.core.parser import ParseContext, Parser
from bscf.core.plan import Plan, PlanGenerator, write_plan
from bscf.core.resolver import Resolver
from bscf.core.target import TargetSet
from bscf.packages.builtins import Fetcher
from bscf.toolchains import TOOLCHAIN_TOKENS, find_c_toolchain, get_toolchain
from bscf.tools.toolchain import BaseToolchain
from bscf.util import git

logger = logging.getLogger(__name__)

CLEAN_TOKENS = ("clean", "c")
SOFTCLEAN_TOKENS = ("softclean", "sc")
BUILD_TOKENS = ("build", "b")
BUILDCACHE_TOKENS = ("buildcache", "bc")
ECHO_TOKENS = ("echo", "e")
NOECHO_TOKENS = ("noecho", "ne")
FORCE_TOKENS = ("force", "f")
NOFORCE_TOKENS = ("noforce", "nf")


@dataclass
class PlannedBuild:
    """Everything produced by planning a project once."""

    targets: TargetSet
    resolver: Resolver
    plans: dict[str, Plan] = field(default_factory=dict)
    fingerprints: dict[str, Fingerprint] = field(default_factory=dict)


class Session:
    """Processes command tokens for one project.

    Args:
        project_dir: Root project directory.
        toolchain: Toolchain to use; detected on first need if None.
        echo: Print each command before running it.
        force: Ignore the cache for every target.
        strict: Treat forward references as errors.
        runner: Command runner passed to the builder.
        fetch: Version-control collaborator for GITINCLUDE and BUILTIN.
        output: Stream for build progress messages.
    """

    def __init__(
        self,
        project_dir: Path | str,
        *,
        toolchain: BaseToolchain | None = None,
        echo: bool = False,
        force: bool = False,
        strict: bool = False,
        runner: Runner = run_shell,
        fetch: Fetcher | None = git.fetch,
        output: TextIO | None = None,
    ) -> None:
        self.project_dir = Path(project_dir).resolve()
        self.config = Configure(build_dir=self.project_dir / "build")
        self.echo = echo
        self.force = force
        self.strict = strict
        self.runner = runner
        self.fetch = fetch
        self.output = output
        self.cache = IncrementalCache()
        self._toolchain = toolchain

    @property
    def toolchain(self) -> BaseToolchain:
        """The selected toolchain, detected and cached on first use.

        Raises:
            ToolNotFoundError: If no toolchain is installed.
        """
        if self._toolchain is None:
            self._toolchain = find_c_toolchain(self.config)
            self.config.save()
        return self._toolchain

    def select_toolchain(self, name: str) -> None:
        """Use toolchain ``name`` for the rest of the session."""
        self._toolchain = get_toolchain(name)
        logger.info("Toolchain set to %s", name)

    # Phases

    def parse(self, *, fetch: bool = True) -> TargetSet:
        context = ParseContext(
            platform=get_platform(),
            toolchain=self.toolchain.name,
            fetch=self.fetch if fetch else None,
            strict=self.strict,
        )
        return Parser(context).parse(self.project_dir)

    def plan(self) -> PlannedBuild:
        """Parse, resolve and plan every target, then apply the plans.

        Raises:
            DependencyCycleError: If the dependency graph has a cycle.
        """
        targets = self.parse()
        resolver = Resolver(targets)
        resolver.check()
        generator = PlanGenerator(self.toolchain, resolver)

        planned = PlannedBuild(targets=targets, resolver=resolver)
        for target in targets:
            plan = generator.generate(target)
            planned.plans[target.name] = plan
            planned.fingerprints[target.name] = compute_fingerprint(
                target, plan, resolver.include_dirs(target)
            )
        for target in targets:
            self._apply(planned.plans[target.name], planned.fingerprints[target.name])
        logger.info("Planned %d target(s)", len(targets))
        return planned

    def _apply(self, plan: Plan, fingerprint: Fingerprint) -> None:
        layout = BuildLayout(plan.target.root_path)
        for directory in plan.directories:
            directory.mkdir(parents=True, exist_ok=True)
        write_plan(plan, layout.plan_file(plan.target.name))
        self.cache.rotate(plan.target, fingerprint)

    def _finish(self, planned: PlannedBuild, builder: Builder | None) -> None:
        """Roll back every target that was not built in this invocation."""
        for target in planned.targets:
            if builder is None or builder.state(target.name) is not TargetState.BUILT:
                self.cache.rollback(target)

    def _builder(self, planned: PlannedBuild) -> Builder:
        return Builder(
            planned.targets,
            self.cache,
            plans=planned.plans,
            fingerprints=planned.fingerprints,
            runner=self.runner,
            echo=self.echo,
            force=self.force,
            output=self.output,
        )

    # Actions

    def build(self, name: str | None = None) -> BuildResult:
        """Build every target, or just ``name`` (forced) and its dependencies."""
        planned = self.plan()
        builder = self._builder(planned)
        try:
            if name is None:
                result = builder.build()
            else:
                result = builder.build_target(name)
        finally:
            self._finish(planned, builder)
        if not result.success:
            logger.error("Build failed: %s", ", ".join(result.failed))
        return result

    def build_cache(self) -> None:
        """Generate plan files without executing anything."""
        planned = self.plan()
        self._finish(planned, None)

    def clean(self) -> None:
        """Remove the build directory of every project."""
        for root in self.parse(fetch=False).project_roots():
            build_dir = BuildLayout(root).build_dir
            logger.info("Removing %s", build_dir)
            shutil.rmtree(build_dir, ignore_errors=True)

    def softclean(self) -> None:
        """Remove objects and cache files, keeping built artifacts."""
        for root in self.parse(fetch=False).project_roots():
            layout = BuildLayout(root)
            shutil.rmtree(layout.obj_root, ignore_errors=True)
            shutil.rmtree(layout.cache_dir, ignore_errors=True)

    def run_token(self, token: str) -> bool:
        """Apply one command token.

        Returns:
            False if the token's operation failed.
        """
        if token in CLEAN_TOKENS:
            self.clean()
        elif token in SOFTCLEAN_TOKENS:
            self.softclean()
        elif token in BUILD_TOKENS:
            return self.build().success
        elif token in BUILDCACHE_TOKENS:
            self.build_cache()
        elif token in TOOLCHAIN_TOKENS:
            self.select_toolchain(token)
        elif token in ECHO_TOKENS:
            self.echo = True
        elif token in NOECHO_TOKENS:
            self.echo = False
        elif token in FORCE_TOKENS:
            self.force = True
        elif token in NOFORCE_TOKENS:
            self.force = False
        else:
            return self.build(token).success
        return True

    def run(self, tokens: Sequence[str] = ()) -> int:
        """Process ``tokens`` in order and return a process exit status.

        With no tokens the whole project is built. Every token is applied
        even after a failure; a fatal error stops processing at once.
        """
        success = True
        try:
            for token in tokens or BUILD_TOKENS[:1]:
                if not self.run_token(token):
                    success = False
        except BscfError as e:
            logger.error("%s", e)
            return 1
        return 0 if success else 1
