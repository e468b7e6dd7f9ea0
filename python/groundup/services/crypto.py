"""Encryption of stored provider credentials.

Credentials are sealed with XSalsa20-Poly1305 (PyNaCl SecretBox) under a
32-byte master key read from GROUNDUP_KEY_ENCRYPTION_KEY (base64). Each row
stores ciphertext, a random 24-byte nonce, and the master key version, so a
future key rotation can decrypt old rows with the old key.

Never log plaintext credentials or ciphertext. The fingerprint (last 4 chars)
is the only credential-derived value that may appear in logs or responses.
"""

import base64
import binascii
import os
from functools import lru_cache

from nacl.exceptions import CryptoError as NaclCryptoError
from nacl.secret import SecretBox
from nacl.utils import random as random_bytes

from groundup.logging import get_logger

logger = get_logger(__name__)

MASTER_KEY_ENV = "GROUNDUP_KEY_ENCRYPTION_KEY"
NONCE_SIZE = SecretBox.NONCE_SIZE
MASTER_KEY_SIZE = SecretBox.KEY_SIZE
CURRENT_MASTER_KEY_VERSION = 1


class CryptoError(Exception):
    """Raised when a credential cannot be sealed or opened."""

    pass


@lru_cache(maxsize=1)
def _master_box() -> SecretBox:
    key_b64 = os.environ.get(MASTER_KEY_ENV)
    if not key_b64:
        raise CryptoError(f"{MASTER_KEY_ENV} environment variable is not set")

    try:
        key = base64.b64decode(key_b64, validate=True)
    except binascii.Error as e:
        raise CryptoError(f"{MASTER_KEY_ENV} is not valid base64") from e

    if len(key) != MASTER_KEY_SIZE:
        raise CryptoError(f"{MASTER_KEY_ENV} must be {MASTER_KEY_SIZE} bytes, got {len(key)}")

    return SecretBox(key)


def clear_master_key_cache() -> None:
    """Forget the loaded master key (tests and key rotation)."""
    _master_box.cache_clear()


def compute_key_fingerprint(api_key: str) -> str:
    """Last 4 characters of the credential, safe for display and logs."""
    return api_key[-4:]


def encrypt_api_key(plaintext: str) -> tuple[bytes, bytes, int, str]:
    """Seal a credential for storage.

    Returns:
        Tuple of (ciphertext, nonce, master_key_version, fingerprint).

    Raises:
        CryptoError: If the master key is missing or invalid.
    """
    box = _master_box()
    nonce = random_bytes(NONCE_SIZE)
    sealed = box.encrypt(plaintext.encode("utf-8"), nonce)
    # SecretBox prepends the nonce; it is stored in its own column
    return sealed.ciphertext, nonce, CURRENT_MASTER_KEY_VERSION, compute_key_fingerprint(plaintext)


def decrypt_api_key(ciphertext: bytes, nonce: bytes, version: int) -> str:
    """Open a stored credential.

    Raises:
        CryptoError: Unknown key version, bad nonce, wrong master key, or tampered data.
    """
    if version != CURRENT_MASTER_KEY_VERSION:
        raise CryptoError(f"Unknown key version: {version}")
    if len(nonce) != NONCE_SIZE:
        raise CryptoError(f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")

    try:
        plaintext = _master_box().decrypt(ciphertext, nonce)
    except NaclCryptoError as e:
        logger.warning("credential_decrypt_failed", key_version=version)
        raise CryptoError("Decryption failed") from e

    return plaintext.decode("utf-8")
