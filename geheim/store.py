"""
The secret store.

This module orchestrates records, the cipher and the export directory:
- adding and importing secrets
- searching decrypted descriptions with a regular expression
- removing secrets
- exporting plaintext copies for viewing, editing and opening,
  reimporting edits and shredding the copies afterwards

Writes of the index/data pair are not atomic. If the second write or
delete of a pair fails, the first one stays in place.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Pattern

from .cipher import CipherContext
from .config import DEFAULT_PLAINTEXT_EXTENSIONS, INDEX_SUFFIX
from .errors import (
    ExternalCommandFailed,
    InvalidArgument,
    RecordAlreadyExists,
    RecordNotFound,
    SourceNotFound,
)
from .externals import Editor, Opener
from .pathhash import join_secret_path, locate, normalize_path, split_secret_path
from .records import DataRecord, IndexRecord
from .utils import ensure_parent_dir, iter_files, shred_file
from .vcs import NullVersionControl, VersionControl
from .writer import SafeWriter

logger = logging.getLogger("geheim.store")


class Store:
    def __init__(
        self,
        root: str | Path,
        export_dir: str | Path,
        cipher: Optional[CipherContext] = None,
        cipher_factory: Optional[Callable[[], CipherContext]] = None,
        vcs: Optional[VersionControl] = None,
        plaintext_extensions: Iterable[str] = DEFAULT_PLAINTEXT_EXTENSIONS,
    ):
        if cipher is None and cipher_factory is None:
            raise ValueError("Either cipher or cipher_factory is required")

        self.root = Path(root)
        self.export_dir = Path(export_dir)
        self.vcs: VersionControl = vcs or NullVersionControl()
        self.writer = SafeWriter(self.vcs)
        self.plaintext_extensions = tuple(plaintext_extensions)

        self._cipher = cipher
        self._cipher_factory = cipher_factory
        self._regex_cache: Dict[Optional[str], Optional[Pattern[str]]] = {}

        if not self.root.is_dir():
            logger.info("Creating %s", self.root)
            self.root.mkdir(parents=True, exist_ok=True)

    @property
    def cipher(self) -> CipherContext:
        """The cipher context, set up on first use and never replaced."""
        if self._cipher is None:
            self._cipher = self._cipher_factory()
        return self._cipher

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @staticmethod
    def locator_for(description: str) -> str:
        segments = split_secret_path(description)
        if not segments:
            raise InvalidArgument(f"Invalid description: {description!r}")
        return locate(segments)

    def get(self, locator: str) -> IndexRecord:
        """Load the index record stored under ``locator``."""
        return IndexRecord.load(self.root, locator, self.cipher, self.plaintext_extensions)

    def walk_indexes(self, pattern: Optional[str] = None) -> Iterator[IndexRecord]:
        """
        Decrypt every index file and yield those matching ``pattern``.

        Yields in directory order. ``None`` matches everything.
        """

        regex = self._compile(pattern)
        for path in sorted(iter_files(self.root, f"*{INDEX_SUFFIX}")):
            locator = path.relative_to(self.root).as_posix()[: -len(INDEX_SUFFIX)]
            record = self.get(locator)
            if regex is None or regex.search(record.description):
                yield record

    def search(self, pattern: Optional[str] = None) -> List[IndexRecord]:
        """Return matching index records ordered by description."""
        return sorted(self.walk_indexes(pattern))

    def _compile(self, pattern: Optional[str]) -> Optional[Pattern[str]]:
        if pattern not in self._regex_cache:
            try:
                self._regex_cache[pattern] = None if pattern is None else re.compile(pattern)
            except re.error as exc:
                raise InvalidArgument(f"Invalid search pattern {pattern!r}: {exc}") from exc
        return self._regex_cache[pattern]

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def add(self, description: str, payload: bytes, force: bool = False) -> IndexRecord:
        """
        Encrypt and store a new secret.

        The data file is written before the index file, so a failure in
        between leaves an unlisted data file rather than a dangling index.

        Raises:
            RecordAlreadyExists: if the secret exists and ``force`` is false
        """

        description = join_secret_path(split_secret_path(normalize_path(description)))
        locator = self.locator_for(description)

        index = IndexRecord.create(self.root, locator, description, self.plaintext_extensions)
        if not force and (index.path.exists() or index.data_path.exists()):
            raise RecordAlreadyExists(f"{description} already exists")

        data = index.new_data(payload)
        data.persist(self.cipher, self.writer, force=force)
        index.persist(self.cipher, self.writer, force=force)
        logger.debug("Added %s", description)
        return index

    @staticmethod
    def import_destination(source: str, dest_dir: Optional[str] = None) -> str:
        """
        Work out the description an imported file is stored under.

        Without ``dest_dir`` the normalized source path is used. A
        ``dest_dir`` containing a dot is taken as the full destination;
        otherwise the source's file name is appended to it.
        """

        src_path = normalize_path(source)
        if dest_dir is None:
            return src_path
        if "." in dest_dir:
            return normalize_path(dest_dir)
        return normalize_path(f"{dest_dir}/{os.path.basename(src_path)}")

    def import_file(
        self,
        source: str | Path,
        dest_dir: Optional[str] = None,
        description: Optional[str] = None,
        force: bool = False,
        shred_source: bool = False,
    ) -> IndexRecord:
        """
        Read an external file and store it as a secret.

        Raises:
            SourceNotFound: if ``source`` is not a file
            RecordAlreadyExists: if the destination exists and ``force`` is false
        """

        src_path = Path(normalize_path(str(source)))
        if not src_path.is_file():
            raise SourceNotFound(f"{source} does not exist!")

        dest_path = self.import_destination(str(source), dest_dir)
        logger.debug("Importing %s -> %s", src_path, dest_path)

        payload = src_path.read_bytes()
        if shred_source:
            shred_file(src_path)

        return self.add(description or dest_path, payload, force=force)

    def import_recursive(
        self,
        directory: str | Path,
        dest_dir: Optional[str] = None,
        force: bool = False,
    ) -> List[IndexRecord]:
        """
        Import every file below ``directory``.

        Each file keeps its path relative to ``directory``. Stops at the
        first failure; files imported before it stay imported.
        """

        directory = Path(directory)
        if not directory.is_dir():
            raise SourceNotFound(f"{directory} is not a directory")

        imported = []
        for source in sorted(iter_files(directory)):
            relative = source.relative_to(directory).as_posix()
            dest = self.import_destination(relative, dest_dir) if dest_dir else relative
            imported.append(self.import_file(source, description=dest, force=force))
        return imported

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove(self, record: IndexRecord | str) -> None:
        """
        Delete both files of a secret and record the removals.

        Raises:
            RecordNotFound: if the index file is missing
        """

        locator = record.locator if isinstance(record, IndexRecord) else record
        index = IndexRecord(self.root, locator, "")

        for path in (index.path, index.data_path):
            logger.info("Deleting %s", path)
            try:
                path.unlink()
            except FileNotFoundError as exc:
                raise RecordNotFound(f"No record at {path}") from exc
            self.vcs.remove(path)

    # ------------------------------------------------------------------
    # Export / edit lifecycle
    # ------------------------------------------------------------------

    def export_path(self, index: IndexRecord, flat: bool = True) -> Path:
        """
        Where the plaintext copy of ``index`` goes.

        ``.`` and ``..`` segments are dropped so the copy always lands
        inside the export directory, where shredding finds it.
        """

        segments = [s for s in split_secret_path(index.description) if s not in (".", "..")]
        if flat:
            segments = segments[-1:]
        if not segments:
            raise InvalidArgument(f"Cannot export {index.description!r}")

        destination = self.export_dir.joinpath(*segments)
        if self.export_dir.resolve() not in destination.resolve().parents:
            raise InvalidArgument(f"{destination} is outside {self.export_dir}")
        return destination

    def export(
        self,
        index: IndexRecord,
        data: Optional[DataRecord] = None,
        flat: bool = True,
    ) -> DataRecord:
        """
        Write the plaintext of a secret into the export directory.

        With ``flat`` the file is named after the last description
        segment, otherwise the whole description path is recreated.
        """

        data = data or index.get_data(self.cipher)
        destination = self.export_path(index, flat=flat)
        ensure_parent_dir(destination)

        logger.debug("Exporting to %s", destination)
        fd = os.open(destination, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as fh:
            fh.write(data.payload)

        data.exported_path = destination
        return data

    def reimport(self, index: IndexRecord, data: DataRecord) -> DataRecord:
        """Re-encrypt the exported copy of ``data`` over the stored secret."""
        if data.exported_path is None:
            raise RecordNotFound(f"{index.description} has not been exported")

        try:
            data.payload = data.exported_path.read_bytes()
        except FileNotFoundError as exc:
            raise RecordNotFound(f"Exported copy {data.exported_path} is gone") from exc

        data.persist(self.cipher, self.writer, force=True)
        index.persist(self.cipher, self.writer, force=True)
        logger.debug("Reimported %s", index.description)
        return data

    def shred_export(self, data: DataRecord) -> None:
        if data.exported_path is not None:
            shred_file(data.exported_path)
            data.exported_path = None

    def edit(self, index: IndexRecord, editor: Editor) -> DataRecord:
        """Export, edit externally, reimport, and shred the copy."""
        data = self.export(index)
        try:
            status = editor.edit(data.exported_path)
            if status != 0:
                raise ExternalCommandFailed(f"Editor exited with status {status}")
            self.reimport(index, data)
        finally:
            self.shred_export(data)
        return data

    def open(self, index: IndexRecord, opener: Opener) -> None:
        """Export, hand to an external viewer, and shred the copy."""
        data = self.export(index)
        try:
            status = opener.open(data.exported_path)
            if status != 0:
                raise ExternalCommandFailed(f"Opener exited with status {status}")
        finally:
            self.shred_export(data)

    def shred_all_exported(self) -> int:
        """Shred every file in the export directory. Returns the count."""
        logger.info("Shredding all exported files")
        count = 0
        for path in list(iter_files(self.export_dir)):
            shred_file(path)
            count += 1
        return count
