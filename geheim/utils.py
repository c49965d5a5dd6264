"""
Shared utility helpers.

This module contains small, reusable helpers that do not belong
to record handling, encryption, or store orchestration.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator

from Crypto.Random import get_random_bytes

logger = logging.getLogger("geheim.utils")

SHRED_PASSES = 3
_SHRED_BLOCK = 64 * 1024


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------


def ensure_parent_dir(path: Path) -> None:
    """Ensure the parent directory of a file exists."""
    if not path.parent.is_dir():
        logger.debug("Creating %s", path.parent)
    path.parent.mkdir(parents=True, exist_ok=True)


def iter_files(root: Path, pattern: str = "*") -> Iterator[Path]:
    """Yield regular files below ``root`` matching ``pattern``."""
    if not root.is_dir():
        return
    for path in root.rglob(pattern):
        if path.is_file():
            yield path


def shred_file(path: Path, passes: int = SHRED_PASSES) -> None:
    """
    Overwrite a file with random bytes, then unlink it.

    A missing file is ignored. Journaling and copy-on-write filesystems
    may still keep old blocks around; this only defeats casual recovery.
    """

    path = Path(path)
    if not path.exists():
        return

    size = path.stat().st_size
    with path.open("r+b") as fh:
        for _ in range(passes):
            fh.seek(0)
            remaining = size
            while remaining > 0:
                block = min(remaining, _SHRED_BLOCK)
                fh.write(get_random_bytes(block))
                remaining -= block
            fh.flush()
            os.fsync(fh.fileno())
        fh.seek(0)
        fh.truncate()

    path.unlink()
    logger.debug("Shredded %s", path)
