"""
Encryption of document bytes at rest using AES-256-CBC (from cryptography).

Every call to encrypt() draws a fresh random 16-byte IV and prepends it to the
ciphertext, so the stored envelope is IV || ciphertext. decrypt() reads the IV
back from the first 16 bytes.

Known limitation: there is no authentication tag, so tampering with stored
ciphertext is not detected beyond PKCS#7 padding checks. The envelope format
is kept as-is for compatibility with already stored documents.
"""
import base64
import binascii
import logging
import os
import re

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = logging.getLogger(__name__)

KEY_SIZE = 32
IV_SIZE = 16

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


class CiphertextError(ValueError):
    """Raised when a ciphertext envelope is too short or its padding is invalid."""


def derive_key(material: str) -> bytes:
    """
    Turn the configured key string into exactly 32 bytes.

    Tries base64 first, then hex, then raw UTF-8; the result is zero-padded or
    truncated to 32 bytes. This is a deterministic configuration policy, not a
    key-derivation function.
    """
    if not material or not material.strip():
        raise RuntimeError("Encryption key is not configured")

    try:
        candidate = base64.b64decode(material, validate=True)
        source = "base64"
    except (binascii.Error, ValueError):
        if len(material) % 2 == 0 and _HEX_RE.match(material):
            candidate = bytes.fromhex(material)
            source = "hex"
        else:
            candidate = material.encode("utf-8")
            source = "utf-8"

    if len(candidate) != KEY_SIZE:
        logger.warning(
            "Encryption key material (%s) is %d bytes; %s to %d bytes",
            source,
            len(candidate),
            "zero-padding" if len(candidate) < KEY_SIZE else "truncating",
            KEY_SIZE,
        )
    else:
        logger.info("Encryption key loaded from %s material", source)
    return candidate[:KEY_SIZE].ljust(KEY_SIZE, b"\x00")


class DocumentCipher:
    """Symmetric cipher for document payloads. The key is fixed at construction."""

    def __init__(self, key: bytes):
        if len(key) != KEY_SIZE:
            raise ValueError(f"AES-256 key must be {KEY_SIZE} bytes")
        self._key = key

    @classmethod
    def from_material(cls, material: str) -> "DocumentCipher":
        return cls(derive_key(material))

    def encrypt(self, plaintext: bytes) -> bytes:
        """Encrypt bytes; returns IV || ciphertext."""
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        return iv + encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, envelope: bytes) -> bytes:
        """Decrypt an IV-prefixed envelope. Raises CiphertextError on malformed input."""
        if len(envelope) < IV_SIZE:
            raise CiphertextError("Ciphertext is shorter than the IV")
        iv, body = envelope[:IV_SIZE], envelope[IV_SIZE:]
        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(body) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise CiphertextError(f"Could not decrypt payload: {e}") from e
