# SPDX-License-Identifier: MIT
"""Command plan generation.

A Plan is the ordered list of steps that builds one target's artifact,
assuming every dependency has already been built:

    prebuild hooks
    one COMPILE step per compilable source
    ARCHIVE (static library) or LINK (executable, shared library)
    COPY of each shared-library dependency next to the artifact
    postbuild hooks

Steps are structured records (kind + argv). They become shell strings
only when rendered, either to persist the plan file or to execute.
Generating a plan has no side effects; the directories a plan needs are
listed on it and created by whoever applies it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from bscf.configure.platform import Platform, get_platform
from bscf.core.layout import BuildLayout
from bscf.core.resolver import Resolver
from bscf.core.target import Target, TargetKind
from bscf.tools.toolchain import BaseToolchain, LinkFlag
from bscf.util.commands import copy_args, join_command

logger = logging.getLogger(__name__)


class StepKind(Enum):
    SHELL = "shell"
    COMPILE = "compile"
    ARCHIVE = "archive"
    LINK = "link"
    COPY = "copy"


@dataclass(frozen=True)
class Step:
    """One entry of a command plan.

    Attributes:
        kind: What the step does.
        args: Argv for structured steps; the verbatim command for SHELL.
        source: Source file compiled by a COMPILE step.
        output: File produced by the step, if any.
    """

    kind: StepKind
    args: tuple[str, ...]
    source: Path | None = None
    output: Path | None = None

    @classmethod
    def shell(cls, command: str) -> Step:
        return cls(StepKind.SHELL, (command,))

    def render(self) -> str:
        """The shell command string for this step."""
        if self.kind is StepKind.SHELL:
            return self.args[0]
        return join_command(self.args)


@dataclass
class Plan:
    """The command plan of one target.

    Attributes:
        target: The planned target.
        steps: Steps in execution order.
        artifact: The produced file, None for interface targets.
        directories: Directories that must exist before execution.
    """

    target: Target
    steps: list[Step] = field(default_factory=list)
    artifact: Path | None = None
    directories: list[Path] = field(default_factory=list)

    def render(self) -> list[str]:
        return [step.render() for step in self.steps]

    def text(self) -> str:
        """Plan file contents: one command per line."""
        return "".join(f"{line}\n" for line in self.render())

    @property
    def compile_steps(self) -> list[Step]:
        return [s for s in self.steps if s.kind is StepKind.COMPILE]


def write_plan(plan: Plan, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(plan.text(), encoding="utf-8")


def read_plan(path: Path) -> list[Step]:
    """Load a persisted plan file as verbatim SHELL steps.

    Raises:
        FileNotFoundError: If the plan file does not exist.
    """
    text = path.read_text(encoding="utf-8")
    return [Step.shell(line) for line in text.splitlines() if line.strip()]


class PlanGenerator:
    """Turns resolved targets into command plans for one toolchain.

    Example:
        generator = PlanGenerator(toolchain, Resolver(targets))
        plan = generator.generate(targets["app"])
        print("\\n".join(plan.render()))
    """

    def __init__(
        self,
        toolchain: BaseToolchain,
        resolver: Resolver,
        *,
        platform: Platform | None = None,
    ) -> None:
        self.toolchain = toolchain
        self.resolver = resolver
        self.platform = platform or get_platform()

    def artifact_path(self, target: Target) -> Path | None:
        """Where ``target``'s artifact is written, None for interfaces."""
        layout = BuildLayout(target.root_path)
        if target.kind is TargetKind.EXECUTABLE:
            return layout.bin_dir / f"{target.name}{self.platform.exe_suffix}"
        if target.kind is TargetKind.STATIC_LIBRARY:
            tc = self.toolchain
            return layout.lib_dir / (
                f"{tc.static_lib_prefix}{target.name}{tc.static_lib_suffix}"
            )
        if target.kind is TargetKind.DYNAMIC_LIBRARY:
            p = self.platform
            return layout.bin_dir / (
                f"{p.shared_lib_prefix}{target.name}{p.shared_lib_suffix}"
            )
        return None

    def generate(self, target: Target) -> Plan:
        """Build the plan for ``target``.

        Raises:
            DependencyCycleError: If ``target`` depends on itself.
        """
        layout = BuildLayout(target.root_path)
        plan = Plan(target=target, artifact=self.artifact_path(target))
        plan.steps.extend(Step.shell(cmd) for cmd in target.prebuild_commands)

        link_flags, copies = self._dependency_inputs(target, layout)

        if plan.artifact is not None:
            obj_dir = layout.obj_dir(target.name)
            objects = self._compile_steps(target, layout, plan)
            if not objects:
                logger.warning("Target %s has no compilable sources", target.name)

            obj_args = [str(o) for o in objects]
            if target.kind is TargetKind.STATIC_LIBRARY:
                args = self.toolchain.archive_args(str(plan.artifact), obj_args)
                plan.steps.append(
                    Step(StepKind.ARCHIVE, tuple(args), output=plan.artifact)
                )
            else:
                args = self.toolchain.link_args(
                    str(plan.artifact),
                    obj_args,
                    link_flags,
                    shared=target.kind is TargetKind.DYNAMIC_LIBRARY,
                )
                plan.steps.append(
                    Step(StepKind.LINK, tuple(args), output=plan.artifact)
                )
                plan.steps.extend(copies)
            plan.directories = [obj_dir, plan.artifact.parent]
            if copies and layout.bin_dir not in plan.directories:
                plan.directories.append(layout.bin_dir)

        plan.steps.extend(Step.shell(cmd) for cmd in target.postbuild_commands)
        return plan

    def _compile_steps(
        self, target: Target, layout: BuildLayout, plan: Plan
    ) -> list[Path]:
        defines = list(target.defines)
        includes = [str(p) for p in self.resolver.include_dirs(target)]
        extra = self.toolchain.get_compile_flags_for_target_type(target.kind)
        obj_dir = layout.obj_dir(target.name)

        objects: list[Path] = []
        for source in target.sources:
            compiler = self.toolchain.compiler_for(source.suffix)
            if compiler is None:
                logger.debug("Skipping %s", source)
                continue
            obj = obj_dir / layout.object_name(source, self.toolchain.object_suffix)
            objects.append(obj)
            args = self.toolchain.compile_args(
                compiler, str(source), str(obj), defines, includes, extra
            )
            plan.steps.append(
                Step(StepKind.COMPILE, tuple(args), source=source, output=obj)
            )
        return objects

    def _dependency_inputs(
        self, target: Target, layout: BuildLayout
    ) -> tuple[list[LinkFlag], list[Step]]:
        """Link flags and artifact copies contributed by direct dependencies.

        Only one level is walked: static libraries give their directory,
        name and libraries; shared libraries give their directory and name
        and are copied next to the artifact; interfaces give their
        libraries; executables give nothing.
        """
        flags = [LinkFlag("lib", lib) for lib in target.libraries]
        copies: list[Step] = []
        for dep in self.resolver.dependencies(target):
            dep_layout = BuildLayout(dep.root_path)
            if dep.kind is TargetKind.STATIC_LIBRARY:
                flags.append(LinkFlag("libdir", str(dep_layout.lib_dir)))
                flags.append(LinkFlag("lib", dep.name))
                flags.extend(LinkFlag("lib", lib) for lib in dep.libraries)
            elif dep.kind is TargetKind.DYNAMIC_LIBRARY:
                flags.append(LinkFlag("libdir", str(dep_layout.bin_dir)))
                flags.append(LinkFlag("lib", dep.name))
                artifact = self.artifact_path(dep)
                if artifact is None or not target.kind.has_artifact:
                    continue
                dest = layout.bin_dir / artifact.name
                if dest != artifact:
                    args = tuple(copy_args(artifact, dest))
                    copies.append(Step(StepKind.COPY, args, output=dest))
            elif dep.kind is TargetKind.INTERFACE:
                flags.extend(LinkFlag("lib", lib) for lib in dep.libraries)
        return flags, copies
