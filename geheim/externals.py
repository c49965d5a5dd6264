"""
External programs the store hands plaintext to.

Each collaborator is a small class around one subprocess call so the
store and CLI can be driven with fakes in tests. All calls block until
the external program returns.
"""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple

from .errors import ExternalCommandFailed

logger = logging.getLogger("geheim.externals")

_CREDENTIALS = re.compile(r"(?P<user>\S+):(?P<password>\S+)")


def _command(cmd: str, *args: str) -> list:
    return [*shlex.split(cmd), *args]


def _run(argv: list, **kwargs) -> subprocess.CompletedProcess:
    logger.debug("Running %s", argv[0])
    try:
        return subprocess.run(argv, **kwargs)
    except FileNotFoundError as exc:
        raise ExternalCommandFailed(f"Command not found: {argv[0]}") from exc


# ---------------------------------------------------------------------------
# Editor
# ---------------------------------------------------------------------------


@dataclass
class Editor:
    cmd: str

    def edit(self, path: Path) -> int:
        """Open ``path`` in the editor and return its exit status."""
        return _run(_command(self.cmd, str(path))).returncode


# ---------------------------------------------------------------------------
# Opener (external viewer application)
# ---------------------------------------------------------------------------


@dataclass
class Opener:
    cmd: str

    def open(self, path: Path) -> int:
        """
        Show ``path`` and return the viewer's exit status.

        The command has to block until the viewer is closed. Launchers
        that hand off and return at once (``xdg-open``, plain ``open``)
        see a file that has already been shredded.
        """
        return _run(_command(self.cmd, str(path))).returncode


# ---------------------------------------------------------------------------
# Clipboard
# ---------------------------------------------------------------------------


def extract_credentials(text: str) -> Tuple[Optional[str], Optional[str], str]:
    """
    Split ``user:password`` out of a secret.

    Returns the first user and password found, plus the text with every
    password replaced by ``CENSORED``.
    """

    match = _CREDENTIALS.search(text)
    censored = _CREDENTIALS.sub(lambda m: f"{m.group('user')}:CENSORED", text)
    if match is None:
        return None, None, censored
    return match.group("user"), match.group("password"), censored


@dataclass
class Clipboard:
    cmd: Optional[str]

    def write(self, data: bytes) -> None:
        if not self.cmd:
            raise ExternalCommandFailed("No clipboard command configured")

        result = _run(_command(self.cmd), input=data)
        if result.returncode != 0:
            raise ExternalCommandFailed(
                f"Clipboard command exited with status {result.returncode}"
            )


# ---------------------------------------------------------------------------
# Picker (fuzzy finder)
# ---------------------------------------------------------------------------


@dataclass
class Picker:
    cmd: str

    def choose(self, candidates: Iterable[str]) -> Optional[str]:
        """
        Let the operator pick one line out of ``candidates``.

        Returns None when the picker was aborted.
        """

        lines = "".join(c if c.endswith("\n") else c + "\n" for c in candidates)
        result = _run(
            _command(self.cmd),
            input=lines,
            stdout=subprocess.PIPE,
            text=True,
        )
        selection = (result.stdout or "").strip()
        if result.returncode != 0 or not selection:
            return None
        return selection
