"""
Error taxonomy.

Every failure the store reports is a GeheimError. None of them are
retried: all failure sources are local and deterministic, so the
current operation aborts and the caller decides what to do.
"""

from __future__ import annotations


class GeheimError(RuntimeError):
    """Base class for all store errors."""


class SetupError(GeheimError):
    """The process cannot proceed at all (exit status 3 in the CLI)."""


class KeyMaterialUnavailable(SetupError):
    pass


class PassphraseUnavailable(SetupError):
    pass


class ConfigError(SetupError):
    pass


class DecryptionFailed(GeheimError):
    """Padding check failed: wrong key, wrong PIN or corrupted ciphertext."""


class RecordNotFound(GeheimError):
    pass


class RecordAlreadyExists(GeheimError):
    pass


class SourceNotFound(GeheimError):
    pass


class ExternalCommandFailed(GeheimError):
    """An editor, clipboard, picker or opener process failed."""


class InvalidArgument(GeheimError):
    """Empty description, unusable regular expression and the like."""
