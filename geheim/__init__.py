"""
geheim

A personal secret store. Text or binary secrets are encrypted at rest,
indexed by an encrypted description, stored under hashed paths and
kept in a git working tree.
"""

__version__ = "0.1.0"

from .cipher import CipherContext
from .errors import (
    DecryptionFailed,
    GeheimError,
    KeyMaterialUnavailable,
    PassphraseUnavailable,
    RecordAlreadyExists,
    RecordNotFound,
    SourceNotFound,
)
from .pathhash import locate
from .records import DataRecord, IndexRecord, is_binary
from .settings import Settings
from .store import Store
from .writer import SafeWriter

__all__ = [
    "CipherContext",
    "DataRecord",
    "DecryptionFailed",
    "GeheimError",
    "IndexRecord",
    "KeyMaterialUnavailable",
    "PassphraseUnavailable",
    "RecordAlreadyExists",
    "RecordNotFound",
    "SafeWriter",
    "Settings",
    "SourceNotFound",
    "Store",
    "is_binary",
    "locate",
]
