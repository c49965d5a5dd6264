"""
Index and data records.

A secret is stored as two encrypted files sharing a locator stem:

    <locator>.index   ciphertext of the description
    <locator>.data    ciphertext of the payload

Records never touch the cipher state on their own; the CipherContext
is passed in by whoever loads or persists them.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from .cipher import CipherContext
from .config import DATA_SUFFIX, DEFAULT_PLAINTEXT_EXTENSIONS, INDEX_SUFFIX
from .errors import RecordNotFound
from .writer import SafeWriter

logger = logging.getLogger("geheim.records")


def is_binary(description: str, plaintext_extensions: Iterable[str] = DEFAULT_PLAINTEXT_EXTENSIONS) -> bool:
    """
    Classify a secret as binary by the file name in its description.

    Only names ending in one of ``plaintext_extensions`` count as text.
    An entry without a leading dot (``README``) matches the whole name
    or its extension-less stem, so ``README`` and ``docs/README`` are
    text while ``photo.png`` and ``archive.tar.gz`` are binary.
    A name without any extension is treated as text.
    """

    name = description.rsplit("/", 1)[-1]
    for ext in plaintext_extensions:
        if ext.startswith("."):
            if name.endswith(ext):
                return False
        elif name == ext or name.startswith(ext + "."):
            return False
    return "." in name


def _read_ciphertext(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError as exc:
        raise RecordNotFound(f"No record at {path}") from exc


# ---------------------------------------------------------------------------
# Data record
# ---------------------------------------------------------------------------


@dataclass
class DataRecord:
    root: Path
    locator: str
    payload: bytes
    exported_path: Optional[Path] = None

    @property
    def path(self) -> Path:
        return self.root / f"{self.locator}{DATA_SUFFIX}"

    @classmethod
    def load(cls, root: Path, locator: str, cipher: CipherContext) -> "DataRecord":
        """
        Read and decrypt the data file of ``locator``.

        Raises:
            RecordNotFound: if the data file does not exist
            DecryptionFailed: if it cannot be decrypted
        """

        record = cls(root=Path(root), locator=locator, payload=b"")
        record.payload = cipher.decrypt(_read_ciphertext(record.path))
        return record

    @classmethod
    def create(cls, root: Path, locator: str, payload: bytes) -> "DataRecord":
        return cls(root=Path(root), locator=locator, payload=payload)

    def persist(self, cipher: CipherContext, writer: SafeWriter, force: bool = False) -> None:
        writer.write(self.path, cipher.encrypt(self.payload), force=force)

    def text(self) -> str:
        return self.payload.decode("utf-8", errors="replace")

    def __str__(self) -> str:
        return "\t" + self.text().replace("\n", "\n\t") + "\n"


# ---------------------------------------------------------------------------
# Index record
# ---------------------------------------------------------------------------


@functools.total_ordering
@dataclass(eq=False)
class IndexRecord:
    root: Path
    locator: str
    description: str
    plaintext_extensions: tuple = field(default=DEFAULT_PLAINTEXT_EXTENSIONS)

    @property
    def path(self) -> Path:
        return self.root / f"{self.locator}{INDEX_SUFFIX}"

    @property
    def data_path(self) -> Path:
        return self.root / f"{self.locator}{DATA_SUFFIX}"

    @property
    def binary(self) -> bool:
        return is_binary(self.description, self.plaintext_extensions)

    @classmethod
    def load(
        cls,
        root: Path,
        locator: str,
        cipher: CipherContext,
        plaintext_extensions: Iterable[str] = DEFAULT_PLAINTEXT_EXTENSIONS,
    ) -> "IndexRecord":
        """
        Read and decrypt the index file of ``locator``.

        Raises:
            RecordNotFound: if the index file does not exist
            DecryptionFailed: if it cannot be decrypted
        """

        root = Path(root)
        ciphertext = _read_ciphertext(root / f"{locator}{INDEX_SUFFIX}")
        description = cipher.decrypt(ciphertext).decode("utf-8", errors="replace")
        return cls(root, locator, description, tuple(plaintext_extensions))

    @classmethod
    def create(
        cls,
        root: Path,
        locator: str,
        description: str,
        plaintext_extensions: Iterable[str] = DEFAULT_PLAINTEXT_EXTENSIONS,
    ) -> "IndexRecord":
        return cls(Path(root), locator, description, tuple(plaintext_extensions))

    def persist(self, cipher: CipherContext, writer: SafeWriter, force: bool = False) -> None:
        writer.write(self.path, cipher.encrypt(self.description.encode("utf-8")), force=force)

    def get_data(self, cipher: CipherContext) -> DataRecord:
        """Decrypt the paired data record."""
        return DataRecord.load(self.root, self.locator, cipher)

    def new_data(self, payload: bytes) -> DataRecord:
        return DataRecord.create(self.root, self.locator, payload)

    # ------------------------------------------------------------------
    # Ordering / display
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IndexRecord):
            return NotImplemented
        return self.description == other.description

    def __lt__(self, other: "IndexRecord") -> bool:
        if not isinstance(other, IndexRecord):
            return NotImplemented
        return self.description < other.description

    def __hash__(self) -> int:
        return hash(self.description)

    def __str__(self) -> str:
        marker = "(BINARY) " if self.binary else ""
        leaf = self.locator.rsplit("/", 1)[-1]
        return f"{self.description}; {marker}...{leaf[-11:-1]}\n"
