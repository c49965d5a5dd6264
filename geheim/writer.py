"""
The single funnel through which record bytes reach disk.

Nothing is ever written to an existing path unless the caller forces
it. Writes go to a temporary sibling that is renamed over the target,
so a reader never sees a half-written record. Every successful write
is staged with version control.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .errors import RecordAlreadyExists
from .utils import ensure_parent_dir
from .vcs import VersionControl

logger = logging.getLogger("geheim.writer")


class SafeWriter:
    def __init__(self, vcs: VersionControl):
        self.vcs = vcs

    def write(self, path: Path, content: bytes, force: bool = False) -> None:
        """
        Write ``content`` to ``path`` and stage it.

        Raises:
            RecordAlreadyExists: if ``path`` exists and ``force`` is false
        """

        path = Path(path)
        if path.exists() and not force:
            raise RecordAlreadyExists(f"{path} already exists")

        ensure_parent_dir(path)

        tmp = path.with_name(path.name + ".tmp")
        logger.info("Writing %s", path)
        try:
            with tmp.open("wb") as fh:
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

        self.vcs.stage(path)
