"""
Symmetric encryption of record content.

Every index and data file in the store is the raw AES-256-CBC
ciphertext (PKCS#7 padded) of its plaintext. There is no header and
no per-record nonce: one key and one IV are derived per CipherContext
and used for every record.

The key comes only from the key material file. The IV comes only from
the PIN, so a wrong PIN is not detected up front; it shows up as a
padding failure or as garbage plaintext on decryption.

Security Note:
    A fixed IV per store leaks equality of plaintext prefixes across
    records. This is kept for compatibility with existing stores. A
    hardened layout would store a random per-record nonce in front of
    the ciphertext.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from Crypto.Cipher import AES
from Crypto.Util.Padding import pad, unpad

from .config import IV_FILLER, IV_SIZE, KEY_SIZE, load_key_material, read_pin
from .errors import DecryptionFailed, PassphraseUnavailable

logger = logging.getLogger("geheim.cipher")


# ---------------------------------------------------------------------------
# Key / IV derivation
# ---------------------------------------------------------------------------


def derive_key(material: bytes, size: int = KEY_SIZE) -> bytes:
    """
    Stretch or cut the key material to exactly ``size`` bytes.

    Short material is repeated until it is long enough, then truncated.
    """

    if not material:
        raise ValueError("Key material must not be empty")

    key = material
    while len(key) < size:
        key += material
    return key[:size]


def derive_iv(pin: str) -> bytes:
    """
    Build the IV from the PIN.

    The doubled PIN is placed on both sides of a fixed filler string and
    the first 16 bytes of the UTF-8 encoding are used.
    """

    doubled = pin * 2
    iv = f"{doubled}{IV_FILLER}{doubled}".encode("utf-8")[:IV_SIZE]
    if len(iv) < IV_SIZE:
        raise PassphraseUnavailable("PIN is too short to derive an IV")
    return iv


# ---------------------------------------------------------------------------
# Cipher context
# ---------------------------------------------------------------------------


class CipherContext:
    """Encrypts and decrypts with one fixed key/IV pair."""

    def __init__(self, key: bytes, iv: bytes):
        if len(key) != KEY_SIZE:
            raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
        if len(iv) != IV_SIZE:
            raise ValueError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")
        self._key = key
        self._iv = iv

    @classmethod
    def initialize(
        cls,
        key_file: str | Path,
        pin_source: Optional[Callable[[], str]] = None,
    ) -> "CipherContext":
        """
        Derive a context from the key material file and a PIN.

        The key file is read before the PIN is requested so that a
        missing key does not cost the operator a prompt.

        Raises:
            KeyMaterialUnavailable: if the key file cannot be read
            PassphraseUnavailable: if no usable PIN can be obtained
        """

        material = load_key_material(key_file)
        pin = (pin_source or read_pin)()
        if not pin:
            raise PassphraseUnavailable("Empty PIN")

        logger.debug("Cipher context initialized")
        return cls(derive_key(material), derive_iv(pin))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: bytes) -> bytes:
        cipher = AES.new(self._key, AES.MODE_CBC, iv=self._iv)
        return cipher.encrypt(pad(plaintext, AES.block_size))

    def decrypt(self, ciphertext: bytes) -> bytes:
        """
        Decrypt and strip the padding.

        Raises:
            DecryptionFailed: if the ciphertext length or padding is invalid
        """

        if not ciphertext or len(ciphertext) % AES.block_size:
            raise DecryptionFailed(
                f"Ciphertext length {len(ciphertext)} is not a multiple of "
                f"{AES.block_size}"
            )

        cipher = AES.new(self._key, AES.MODE_CBC, iv=self._iv)
        try:
            return unpad(cipher.decrypt(ciphertext), AES.block_size)
        except ValueError as exc:
            raise DecryptionFailed(
                "Padding check failed (wrong PIN, wrong key file or corrupted data)"
            ) from exc
