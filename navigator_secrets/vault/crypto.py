"""
Vault Crypto Core: key normalization and envelope encryption.

Every secret value is sealed with AES-256-GCM under the application master key:
    plaintext --AES-GCM(key, nonce 16B)--> ciphertext + detached tag 16B

The result is a ``CipherBundle`` of three lowercase hex strings; see
``bundle.py`` for how bundles are stored.

Security Note:
    Never log plaintext, ciphertext or key material.
    Nonces are random 128-bit, drawn fresh on every call; no counter state.
"""
import re
import os
import hashlib
import logging
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import DecryptionError
from ..models import CipherBundle

logger = logging.getLogger("navigator.secrets")

NONCE_SIZE = 16  # 128-bit nonce
TAG_SIZE = 16  # GCM tag
KEY_LENGTH = 32  # AES-256

_HEX_KEY = re.compile(r"[0-9a-fA-F]{64}")


# ---------------------------------------------------------------------------
# Key normalization
# ---------------------------------------------------------------------------

def normalize_key(secret: str) -> bytes:
    """Turn a configured secret into a 32-byte AES key.

    A 64-character hex string is taken as an already generated key and
    decoded as-is; any other passphrase is hashed with SHA-256.

    Args:
        secret: Configured master secret, any length.

    Returns:
        32-byte key.
    """
    if _HEX_KEY.fullmatch(secret):
        return bytes.fromhex(secret)
    return hashlib.sha256(secret.encode("utf-8", "surrogatepass")).digest()


def generate_key() -> str:
    """Generate a random 32-byte master key and return it as hex.

    This is a utility for operators to generate new keys.
    """
    return secrets.token_hex(KEY_LENGTH)


def _get_cipher(key: bytes) -> AESGCM:
    if len(key) != KEY_LENGTH:
        raise ValueError(
            f"Encryption key must be exactly {KEY_LENGTH} bytes, got {len(key)}"
        )
    return AESGCM(key)


# ---------------------------------------------------------------------------
# Envelope encryption
# ---------------------------------------------------------------------------

def encrypt_value(plaintext: str, key: bytes) -> CipherBundle:
    """Encrypt a string value under a 32-byte key.

    Args:
        plaintext: Value to protect; the empty string is allowed.
        key: Raw 32-byte key (see ``normalize_key``).

    Returns:
        CipherBundle with hex ciphertext, nonce and tag.
    """
    cipher = _get_cipher(key)
    nonce = os.urandom(NONCE_SIZE)
    sealed = cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
    return CipherBundle(
        ciphertext=sealed[:-TAG_SIZE].hex(),
        nonce=nonce.hex(),
        tag=sealed[-TAG_SIZE:].hex(),
    )


def decrypt_value(bundle: CipherBundle, key: bytes) -> str:
    """Authenticate and decrypt a bundle.

    Args:
        bundle: Bundle produced by ``encrypt_value``.
        key: Raw 32-byte key.

    Returns:
        Decrypted plaintext.

    Raises:
        DecryptionError: On a wrong key, tampered or malformed bundle. The
            error is the same whatever the cause.
    """
    cipher = _get_cipher(key)
    try:
        nonce = bytes.fromhex(bundle.nonce)
        tag = bytes.fromhex(bundle.tag)
        ciphertext = bytes.fromhex(bundle.ciphertext)
    except (TypeError, ValueError):
        raise DecryptionError() from None
    if len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
        raise DecryptionError()
    try:
        plaintext = cipher.decrypt(nonce, ciphertext + tag, None)
        return plaintext.decode("utf-8")
    except (InvalidTag, UnicodeDecodeError):
        raise DecryptionError() from None


class VaultCipher:
    """Encrypts and decrypts secret values under one master key.

    Built once at startup and passed to the controllers; the key cannot be
    replaced afterwards.
    """

    __slots__ = ("_key",)

    def __init__(self, key: bytes):
        _get_cipher(key)
        object.__setattr__(self, "_key", bytes(key))

    def __setattr__(self, name, value):
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} aes-256-gcm>"

    @classmethod
    def from_config(cls, config) -> "VaultCipher":
        """Create the cipher from a ``VaultConfig``."""
        return cls(config.master_key)

    def encrypt(self, plaintext: str) -> CipherBundle:
        return encrypt_value(plaintext, self._key)

    def decrypt(self, bundle: CipherBundle) -> str:
        try:
            return decrypt_value(bundle, self._key)
        except DecryptionError:
            logger.warning("Secret bundle rejected during decryption")
            raise
