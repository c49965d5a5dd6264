"""
Settings loading, validation, and normalization.

This module answers one question:
    "Where does the store live and which tools does it call?"

Responsibilities:
- Load the optional settings YAML file
- Validate structure and version
- Apply environment overrides and defaults
- Expose a clean Python representation

This module does NOT:
- Read key material or PINs
- Encrypt or decrypt data
- Walk the store
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .config import (
    DEFAULT_DATA_DIR,
    DEFAULT_EDIT_CMD,
    DEFAULT_EXPORT_DIR,
    DEFAULT_KEY_FILE,
    DEFAULT_PICKER_CMD,
    DEFAULT_PLAINTEXT_EXTENSIONS,
    DEFAULT_SETTINGS_FILE,
    ENV_DATA_DIR,
    ENV_EXPORT_DIR,
    ENV_KEY_FILE,
    ENV_SETTINGS,
    SUPPORTED_SETTINGS_VERSION,
)
from .errors import ConfigError


# ---------------------------------------------------------------------------
# Platform defaults
# ---------------------------------------------------------------------------


def default_clipboard_cmd(system: Optional[str] = None) -> Optional[str]:
    system = system or platform.system()
    if system == "Darwin":
        return "pbcopy"
    if system == "Linux":
        return "gpaste-client"
    return None


def default_open_cmd(system: Optional[str] = None) -> str:
    # The viewer must block until closed: the export is shredded right after.
    system = system or platform.system()
    if system == "Darwin":
        return "open -W"
    if system == "Linux":
        return "evince"
    # Termux (Android)
    return "termux-open"


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class Settings:
    data_dir: Path = field(default_factory=lambda: Path(DEFAULT_DATA_DIR).expanduser())
    export_dir: Path = field(default_factory=lambda: Path(DEFAULT_EXPORT_DIR).expanduser())
    key_file: Path = field(default_factory=lambda: Path(DEFAULT_KEY_FILE).expanduser())
    edit_cmd: str = DEFAULT_EDIT_CMD
    clipboard_cmd: Optional[str] = field(default_factory=default_clipboard_cmd)
    open_cmd: str = field(default_factory=default_open_cmd)
    picker_cmd: str = DEFAULT_PICKER_CMD
    sync_remotes: List[str] = field(default_factory=list)
    plaintext_extensions: List[str] = field(
        default_factory=lambda: list(DEFAULT_PLAINTEXT_EXTENSIONS)
    )

    # ------------------------------------------------------------------
    # Loading API
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Optional[str | Path] = None) -> "Settings":
        """
        Load settings, falling back to defaults for anything not given.

        Lookup order for the file: explicit ``path``, then the
        GEHEIM_CONFIG environment variable, then the default location.
        A missing file is not an error. Environment overrides for the
        store directories and key file are applied last.

        Raises:
            ConfigError: if the file exists but is invalid

        Returns:
            Settings
        """

        path = Path(path or os.getenv(ENV_SETTINGS) or DEFAULT_SETTINGS_FILE).expanduser()

        raw: Dict[str, Any] = {}
        if path.exists():
            try:
                with path.open("r", encoding="utf-8") as fh:
                    raw = yaml.safe_load(fh) or {}
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigError(f"Failed to read settings {path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping")

        settings = cls._from_dict(raw)
        settings._apply_env()
        return settings

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Settings":
        version = data.get("version", SUPPORTED_SETTINGS_VERSION)
        if version != SUPPORTED_SETTINGS_VERSION:
            raise ConfigError(f"Unsupported settings version: {version}")

        settings = cls()

        for name in ("data_dir", "export_dir", "key_file"):
            if data.get(name):
                setattr(settings, name, Path(str(data[name])).expanduser())

        for name in ("edit_cmd", "open_cmd", "picker_cmd", "clipboard_cmd"):
            if name in data:
                setattr(settings, name, data[name])

        settings.sync_remotes = cls._parse_list(data, "sync_remotes", settings.sync_remotes)
        settings.plaintext_extensions = cls._parse_list(
            data, "plaintext_extensions", settings.plaintext_extensions
        )
        return settings

    @staticmethod
    def _parse_list(data: Dict[str, Any], key: str, default: List[str]) -> List[str]:
        if key not in data:
            return default

        value = data[key]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"'{key}' must be a list of strings")
        return list(value)

    def _apply_env(self) -> None:
        overrides = {
            "data_dir": ENV_DATA_DIR,
            "export_dir": ENV_EXPORT_DIR,
            "key_file": ENV_KEY_FILE,
        }
        for name, env in overrides.items():
            value = os.getenv(env)
            if value:
                setattr(self, name, Path(value).expanduser())
