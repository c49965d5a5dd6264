"""Shared fixtures: key material, cipher contexts and a store in tmp_path."""
from pathlib import Path

import pytest

from geheim.cipher import CipherContext
from geheim.store import Store

PIN = "1234"


class RecordingVCS:
    """Version control stand-in that remembers what it was told."""

    def __init__(self):
        self.staged = []
        self.removed = []

    def stage(self, path: Path) -> None:
        self.staged.append(Path(path))

    def remove(self, path: Path) -> None:
        self.removed.append(Path(path))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GEHEIM_PIN", "GEHEIM_CONFIG", "GEHEIM_DATA_DIR", "GEHEIM_EXPORT_DIR", "GEHEIM_KEY_FILE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def key_file(tmp_path):
    path = tmp_path / "geheim.key"
    path.write_bytes(b"not-so-random key material")
    return path


@pytest.fixture
def cipher(key_file):
    return CipherContext.initialize(key_file, pin_source=lambda: PIN)


@pytest.fixture
def vcs():
    return RecordingVCS()


@pytest.fixture
def store(tmp_path, cipher, vcs):
    return Store(tmp_path / "data", tmp_path / "export", cipher=cipher, vcs=vcs)
