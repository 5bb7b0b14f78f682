# SPDX-License-Identifier: MIT
"""Builtin sub-projects.

A builtin is a third-party project that bscf knows how to fetch and
splice into a build with a single ``BUILTIN <name>`` line.

There are two kinds of builtins:

1. A source repository paired with a database repository that only
   carries the ``proj.bscf`` describing how to build it (projects that
   do not ship a proj.bscf themselves).
2. A single repository that already contains its own ``proj.bscf``.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# fetch(url, destination_dir, branch) -> success
Fetcher = Callable[[str, Path, str | None], bool]


@dataclass(frozen=True)
class Builtin:
    """A registry entry.

    Attributes:
        repo: Source repository URL.
        db: Repository carrying the proj.bscf (unused for single repos).
        single_repo: The source repository carries its own proj.bscf.
    """

    repo: str
    db: str = ""
    single_repo: bool = False


BUILTINS: dict[str, Builtin] = {
    "glfw": Builtin(
        repo="https://github.com/glfw/glfw",
        db="https://github.com/bscf-db/glfw",
    ),
    "whereami": Builtin(
        repo="https://github.com/gpakosz/whereami",
        db="https://github.com/bscf-db/whereami",
    ),
}


def get_builtin(builtin: Builtin, name: str, project_dir: Path, fetch: Fetcher) -> bool:
    """Fetch a builtin into ``project_dir/lib/<name>``.

    For database-backed builtins the database repository is cloned into a
    staging directory, its proj.bscf copied over the source checkout, and
    the staging directory removed. Failing to remove the staging directory
    is not an error.

    Args:
        builtin: Registry entry.
        name: Builtin name (also the directory name under lib/).
        project_dir: Project that requested the builtin.
        fetch: Version-control collaborator.

    Returns:
        True if the builtin is ready to be parsed.
    """
    destination = project_dir / "lib" / name
    destination.parent.mkdir(parents=True, exist_ok=True)
    if not fetch(builtin.repo, destination, None):
        logger.error("Could not fetch builtin %s from %s", name, builtin.repo)
        return False
    if builtin.single_repo:
        return True

    staging = destination / "bscf-db"
    shutil.rmtree(staging, ignore_errors=True)
    try:
        if not fetch(builtin.db, staging, None):
            logger.error(
                "Could not fetch project file for %s from %s", name, builtin.db
            )
            return False
        config = staging / "proj.bscf"
        if not config.is_file():
            logger.error("%s carries no proj.bscf", builtin.db)
            return False
        shutil.copyfile(config, destination / "proj.bscf")
    finally:
        shutil.rmtree(staging, ignore_errors=True)
    return True
