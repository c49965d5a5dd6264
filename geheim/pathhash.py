"""
Secret path handling and on-disk path obfuscation.

A secret is identified by a slash-delimited description such as
``bank/online/login.txt``. On disk only a per-segment SHA-256 digest of
that description is visible, so the directory structure is kept while
every name in it is hidden.
"""

from __future__ import annotations

import hashlib
import re
from typing import List, Sequence

_DUPLICATE_SEPARATORS = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """Collapse duplicate separators and strip a leading ``./``."""
    path = _DUPLICATE_SEPARATORS.sub("/", path)
    while path.startswith("./"):
        path = path[2:]
    return path


def split_secret_path(description: str) -> List[str]:
    """Split a description into its non-empty segments."""
    return [part for part in description.split("/") if part]


def join_secret_path(segments: Sequence[str]) -> str:
    return "/".join(segments)


def hash_segment(segment: str) -> str:
    """Return the fixed-width hex digest of a single path segment."""
    return hashlib.sha256(segment.encode("utf-8")).hexdigest()


def locate(segments: Sequence[str]) -> str:
    """
    Map a secret path to its storage locator.

    Each segment is hashed on its own and the digests are re-joined
    with ``/``. Empty input gives an empty locator; rejecting that is
    up to the caller.
    """

    return "/".join(hash_segment(part) for part in segments)


def locate_description(description: str) -> str:
    return locate(split_secret_path(description))
