"""
Global configuration and environment handling.

This module is responsible for:
- Defining global constants and defaults
- Reading the PIN (environment override or silent prompt)
- Reading the raw key material file

Nothing in this file should depend on:
- the record layout of the store
- version control
- CLI arguments

If something here changes, every existing store becomes unreadable.
"""

from __future__ import annotations

import getpass
import logging
import os
import sys
from pathlib import Path
from typing import Final, Optional, TextIO

from .errors import KeyMaterialUnavailable, PassphraseUnavailable

logger = logging.getLogger("geheim.config")

# ---------------------------------------------------------------------------
# Tool / format versioning
# ---------------------------------------------------------------------------

SUPPORTED_SETTINGS_VERSION: Final[int] = 1
TOOL_VERSION: Final[str] = "0.1.0"

# ---------------------------------------------------------------------------
# Cipher parameters
# ---------------------------------------------------------------------------

# AES-256-CBC
KEY_SIZE: Final[int] = 32
IV_SIZE: Final[int] = 16
IV_FILLER: Final[str] = "Hello world"

# ---------------------------------------------------------------------------
# Store layout
# ---------------------------------------------------------------------------

INDEX_SUFFIX: Final[str] = ".index"
DATA_SUFFIX: Final[str] = ".data"

DEFAULT_DATA_DIR: Final[str] = "~/git/geheimlager"
DEFAULT_EXPORT_DIR: Final[str] = "~/.geheimlagerexport"
DEFAULT_KEY_FILE: Final[str] = "~/.geheimlager.key"
DEFAULT_SETTINGS_FILE: Final[str] = "~/.config/geheim/config.yml"

DEFAULT_EDIT_CMD: Final[str] = (
    "nvim --cmd 'set noswapfile' --cmd 'set nobackup' --cmd 'set nowritebackup'"
)
DEFAULT_PICKER_CMD: Final[str] = "fzf"
DEFAULT_PLAINTEXT_EXTENSIONS: Final[tuple] = (".txt", ".md", ".csv", ".conf", "README")

COMMIT_MESSAGE: Final[str] = "Changing stuff, not telling what in commit history"

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_PIN: Final[str] = "GEHEIM_PIN"
ENV_SETTINGS: Final[str] = "GEHEIM_CONFIG"
ENV_DATA_DIR: Final[str] = "GEHEIM_DATA_DIR"
ENV_EXPORT_DIR: Final[str] = "GEHEIM_EXPORT_DIR"
ENV_KEY_FILE: Final[str] = "GEHEIM_KEY_FILE"

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def read_pin(stream: Optional[TextIO] = None) -> str:
    """
    Obtain the PIN used for IV derivation.

    The environment override wins. Otherwise the PIN is read from the
    terminal with echo suppressed. When stdin is not a terminal (pipes,
    some Android shells) a plain line is read instead.

    Raises:
        PassphraseUnavailable: if no PIN can be obtained

    Returns:
        str: the PIN, without its trailing newline
    """

    pin = os.getenv(ENV_PIN)
    if pin:
        return pin

    stream = stream or sys.stdin
    try:
        if stream.isatty():
            pin = getpass.getpass("< PIN: ", stream=sys.stderr)
        else:
            pin = stream.readline().rstrip("\r\n")
    except (OSError, EOFError) as exc:
        raise PassphraseUnavailable(f"Unable to read PIN: {exc}") from exc

    if not pin:
        raise PassphraseUnavailable(
            f"No PIN given (set {ENV_PIN} or enter it at the prompt)"
        )
    return pin


def load_key_material(path: str | Path) -> bytes:
    """
    Read the raw bytes of the key material file.

    Raises:
        KeyMaterialUnavailable: if the file is missing, unreadable or empty

    Returns:
        bytes: file content, unmodified
    """

    path = Path(path).expanduser()
    try:
        material = path.read_bytes()
    except OSError as exc:
        raise KeyMaterialUnavailable(
            f"Cannot read key file {path}: {exc.strerror or exc}"
        ) from exc

    if not material:
        raise KeyMaterialUnavailable(f"Key file is empty: {path}")

    logger.debug("Loaded key material from %s", path)
    return material
