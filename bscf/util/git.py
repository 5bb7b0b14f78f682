# SPDX-License-Identifier: MIT
"""Version-control retrieval of remote sub-projects.

``fetch`` is the only entry point the rest of bscf uses. It clones a
repository, or hard-resets and pulls an existing checkout.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def is_git_available() -> bool:
    return shutil.which("git") is not None


def _git(args: list[str], cwd: Path | None = None) -> bool:
    cmd = ["git", *args]
    logger.debug("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        logger.error("Failed to run git: %s", e)
        return False
    return result.returncode == 0


def fetch(url: str, destination: Path, branch: str | None = None) -> bool:
    """Clone ``url`` into ``destination`` or update an existing checkout.

    Local modifications in an existing checkout are discarded.

    Args:
        url: Repository URL.
        destination: Checkout directory.
        branch: Optional branch to check out.

    Returns:
        True on success.
    """
    if not is_git_available():
        logger.error("git is not installed")
        return False

    if (destination / ".git").exists():
        logger.info("Updating %s", destination.name)
        if not _git(["reset", "--hard"], cwd=destination):
            return False
        pull = ["pull", "origin"]
        if branch:
            pull.append(branch)
        return _git(pull, cwd=destination)

    logger.info("Cloning %s", url)
    destination.parent.mkdir(parents=True, exist_ok=True)
    clone = ["clone"]
    if branch:
        clone.extend(["--branch", branch])
    clone.extend([url, str(destination)])
    return _git(clone)
