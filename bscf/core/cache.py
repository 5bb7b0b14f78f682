# SPDX-License-Identifier: MIT
"""Incremental build cache.

Each target has a fingerprint: one line per tracked input,

    <name hash> <content hash>

where the name hash is the CRC-32 of the input's logical name (its path
relative to the project, or a ``<config>``/``<plan>`` marker) and the
content hash is the CRC-32 of its bytes, or ``missing``. Tracked inputs
are the target's sources, every header under its resolved include
directories, the declaring proj.bscf, and the rendered plan.

Fingerprints are kept in two generations per target under
``build/cache``:

    <target>.fingerprint       written when the target is planned
    <target>.fingerprint.prev  what was current before that

Planning rotates canonical to previous and writes a fresh canonical
file. A target whose two generations are identical is up to date. A
target that did not build successfully is rolled back afterwards, so
the next run still sees the inputs of the last good build.
"""

from __future__ import annotations

import logging
import os
import shutil
import zlib
from dataclasses import dataclass, field
from pathlib import Path

from bscf.core.layout import BuildLayout
from bscf.core.plan import Plan
from bscf.core.target import Target
from bscf.tools.toolchain import SOURCE_SUFFIX_MAP

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
MISSING = "missing"
CONFIG_ENTRY = "<config>"
PLAN_ENTRY = "<plan>"

HEADER_EXTENSIONS = frozenset({".h", ".hh", ".hpp", ".hxx", ".inl"})


def _crc(data: bytes, value: int = 0) -> int:
    return zlib.crc32(data, value) & 0xFFFFFFFF


def name_hash(name: str) -> str:
    return f"{_crc(name.encode('utf-8')):08x}"


def text_hash(text: str) -> str:
    return f"{_crc(text.encode('utf-8')):08x}"


def content_hash(path: Path) -> str:
    """CRC-32 of a file's bytes, or ``missing`` if it cannot be read."""
    value = 0
    try:
        with open(path, "rb") as f:
            while chunk := f.read(CHUNK_SIZE):
                value = _crc(chunk, value)
    except OSError:
        return MISSING
    return f"{value:08x}"


def logical_name(path: Path, root: Path) -> str:
    """Stable name of an input: relative to ``root`` when possible."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


@dataclass(frozen=True)
class FingerprintEntry:
    name: str
    name_hash: str
    content_hash: str
    path: Path | None = None
    compilable: bool = False

    def line(self) -> str:
        return f"{self.name_hash} {self.content_hash}"


@dataclass
class Fingerprint:
    """The tracked inputs of one target at planning time."""

    entries: list[FingerprintEntry] = field(default_factory=list)

    def add_file(self, path: Path, root: Path) -> None:
        name = logical_name(path, root)
        self.entries.append(
            FingerprintEntry(
                name=name,
                name_hash=name_hash(name),
                content_hash=content_hash(path),
                path=path,
                compilable=path.suffix.lower() in SOURCE_SUFFIX_MAP,
            )
        )

    def add_text(self, name: str, text: str) -> None:
        self.entries.append(
            FingerprintEntry(
                name=name, name_hash=name_hash(name), content_hash=text_hash(text)
            )
        )

    def lines(self) -> list[str]:
        return [entry.line() for entry in self.entries]

    def text(self) -> str:
        return "".join(f"{line}\n" for line in self.lines())


def _headers(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(
        p
        for p in directory.rglob("*")
        if p.is_file() and p.suffix.lower() in HEADER_EXTENSIONS
    )


def compute_fingerprint(
    target: Target, plan: Plan, include_dirs: list[Path]
) -> Fingerprint:
    """Fingerprint ``target``'s current inputs.

    Args:
        target: Target being planned.
        plan: Its freshly generated plan.
        include_dirs: Its resolved include directories.

    Returns:
        Entries for sources, headers, config file and plan, in that order.
    """
    fingerprint = Fingerprint()
    seen: set[Path] = set()
    for source in target.sources:
        if source not in seen:
            seen.add(source)
            fingerprint.add_file(source, target.root_path)
    for directory in include_dirs:
        for header in _headers(directory):
            if header not in seen:
                seen.add(header)
                fingerprint.add_file(header, target.root_path)

    fingerprint.entries.append(
        FingerprintEntry(
            name=CONFIG_ENTRY,
            name_hash=name_hash(CONFIG_ENTRY),
            content_hash=content_hash(target.config_file),
        )
    )
    fingerprint.add_text(PLAN_ENTRY, plan.text())
    return fingerprint


def _read_lines(path: Path) -> list[str] | None:
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return None


class IncrementalCache:
    """Two-generation fingerprint store of every target."""

    def rotate(self, target: Target, fingerprint: Fingerprint) -> None:
        """Make the current fingerprint the previous one and store a new one."""
        layout = BuildLayout(target.root_path)
        canonical = layout.fingerprint_file(target.name)
        previous = layout.previous_fingerprint_file(target.name)
        layout.cache_dir.mkdir(parents=True, exist_ok=True)
        if canonical.exists():
            os.replace(canonical, previous)
        else:
            previous.unlink(missing_ok=True)
        canonical.write_text(fingerprint.text(), encoding="utf-8")

    def is_skippable(self, target: Target) -> bool:
        """True if nothing changed since the last successful build."""
        layout = BuildLayout(target.root_path)
        previous = _read_lines(layout.previous_fingerprint_file(target.name))
        current = _read_lines(layout.fingerprint_file(target.name))
        return previous is not None and current is not None and previous == current

    def stale_sources(
        self, target: Target, fingerprint: Fingerprint
    ) -> set[Path] | None:
        """Compilable sources whose content changed since the last build.

        Returns:
            The changed sources, or None if every source must be rebuilt:
            there is no previous fingerprint, an input was removed, or a
            header, the config file or the plan changed.
        """
        layout = BuildLayout(target.root_path)
        previous = _read_lines(layout.previous_fingerprint_file(target.name))
        if previous is None:
            return None
        old: dict[str, str] = {}
        for line in previous:
            parts = line.split()
            if len(parts) == 2:
                old[parts[0]] = parts[1]

        current = {entry.name_hash for entry in fingerprint.entries}
        if any(h not in current for h in old):
            return None

        stale: set[Path] = set()
        for entry in fingerprint.entries:
            if old.get(entry.name_hash) == entry.content_hash:
                continue
            if not entry.compilable or entry.path is None:
                logger.debug("%s: %s changed", target.name, entry.name)
                return None
            stale.add(entry.path)
        return stale

    def rollback(self, target: Target) -> None:
        """Restore the fingerprint of the last successful build."""
        layout = BuildLayout(target.root_path)
        canonical = layout.fingerprint_file(target.name)
        previous = layout.previous_fingerprint_file(target.name)
        if previous.exists():
            shutil.copyfile(previous, canonical)
        else:
            canonical.unlink(missing_ok=True)
