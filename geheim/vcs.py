"""
Version control collaborator.

The store only needs two operations from version control: ``stage`` a
written path and ``remove`` a deleted one. The remaining commands
(status, commit, reset, sync) are thin wrappers used by the CLI.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Protocol, Sequence

from .config import COMMIT_MESSAGE
from .errors import ExternalCommandFailed

logger = logging.getLogger("geheim.vcs")


class VersionControl(Protocol):
    def stage(self, path: Path) -> None: ...

    def remove(self, path: Path) -> None: ...


class NullVersionControl:
    """Does nothing. For stores that are not under version control."""

    def stage(self, path: Path) -> None:
        logger.debug("Not staging %s (no version control)", path)

    def remove(self, path: Path) -> None:
        logger.debug("Not recording removal of %s (no version control)", path)


class Git:
    """Runs git in the store's working tree."""

    def __init__(self, worktree: str | Path, remotes: Sequence[str] = ()):
        self.worktree = Path(worktree)
        self.remotes: List[str] = list(remotes)

    # ------------------------------------------------------------------
    # Store interface
    # ------------------------------------------------------------------

    def stage(self, path: Path) -> None:
        self._run("add", "--", self._relative(path))

    def remove(self, path: Path) -> None:
        # The file is already gone from the worktree; only record the removal.
        self._run("rm", "--cached", "--ignore-unmatch", "--quiet", "--", self._relative(path))

    # ------------------------------------------------------------------
    # CLI helpers
    # ------------------------------------------------------------------

    def status(self) -> str:
        return self._run("status")

    def commit(self) -> str:
        return self._run("commit", "-a", "-m", COMMIT_MESSAGE)

    def reset(self) -> str:
        return self._run("reset", "--hard")

    def sync(self, branch: str = "master") -> str:
        output = []
        for remote in self.remotes:
            logger.info("Synchronising %s with %s", self.worktree, remote)
            output.append(self._run("pull", remote, branch))
            output.append(self._run("push", remote, branch))
        output.append(self.status())
        return "\n".join(part for part in output if part)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _relative(self, path: Path) -> str:
        path = Path(path)
        try:
            return path.relative_to(self.worktree).as_posix()
        except ValueError:
            return str(path)

    def _run(self, *args: str) -> str:
        cmd = ["git", *args]
        logger.debug("Running %s in %s", " ".join(cmd), self.worktree)
        try:
            result = subprocess.run(
                cmd,
                cwd=self.worktree,
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError as exc:
            raise ExternalCommandFailed("git is not installed") from exc
        except subprocess.CalledProcessError as exc:
            raise ExternalCommandFailed(
                f"git {args[0]} failed: {(exc.output or '').strip()}"
            ) from exc
        return result.stdout.strip()
