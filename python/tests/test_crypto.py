"""Tests for credential encryption at rest.

- The master key comes from GROUNDUP_KEY_ENCRYPTION_KEY (base64, 32 bytes)
- Each seal uses a fresh 24-byte nonce
- Opening fails with a wrong nonce, wrong master key, unknown version or tampered data
"""

import base64

import pytest

from groundup.services.crypto import (
    CURRENT_MASTER_KEY_VERSION,
    MASTER_KEY_ENV,
    NONCE_SIZE,
    CryptoError,
    clear_master_key_cache,
    compute_key_fingerprint,
    decrypt_api_key,
    encrypt_api_key,
)

SECRET = "sk-test-secret-credential-0000"


class TestMasterKey:
    def test_missing_key_raises_error(self, monkeypatch):
        monkeypatch.delenv(MASTER_KEY_ENV)
        clear_master_key_cache()

        with pytest.raises(CryptoError, match="not set"):
            encrypt_api_key(SECRET)

    def test_invalid_base64_raises_error(self, monkeypatch):
        monkeypatch.setenv(MASTER_KEY_ENV, "not base64!!!")
        clear_master_key_cache()

        with pytest.raises(CryptoError, match="base64"):
            encrypt_api_key(SECRET)

    def test_wrong_key_size_raises_error(self, monkeypatch):
        monkeypatch.setenv(MASTER_KEY_ENV, base64.b64encode(b"short").decode("ascii"))
        clear_master_key_cache()

        with pytest.raises(CryptoError, match="32 bytes"):
            encrypt_api_key(SECRET)


class TestSealAndOpen:
    def test_seal_then_open(self):
        ciphertext, nonce, version, fingerprint = encrypt_api_key(SECRET)

        assert version == CURRENT_MASTER_KEY_VERSION
        assert len(nonce) == NONCE_SIZE
        assert fingerprint == "0000"
        assert SECRET.encode() not in ciphertext
        assert decrypt_api_key(ciphertext, nonce, version) == SECRET

    def test_fresh_nonce_each_time(self):
        first = encrypt_api_key(SECRET)
        second = encrypt_api_key(SECRET)

        assert first[1] != second[1]
        assert first[0] != second[0]

    def test_wrong_nonce_fails(self):
        ciphertext, nonce, version, _ = encrypt_api_key(SECRET)
        other_nonce = encrypt_api_key(SECRET)[1]

        with pytest.raises(CryptoError, match="Decryption failed"):
            decrypt_api_key(ciphertext, other_nonce, version)

    def test_tampered_ciphertext_fails(self):
        ciphertext, nonce, version, _ = encrypt_api_key(SECRET)
        tampered = bytes([ciphertext[0] ^ 0x01]) + ciphertext[1:]

        with pytest.raises(CryptoError):
            decrypt_api_key(tampered, nonce, version)

    def test_wrong_master_key_fails(self, monkeypatch):
        ciphertext, nonce, version, _ = encrypt_api_key(SECRET)

        monkeypatch.setenv(MASTER_KEY_ENV, base64.b64encode(b"x" * 32).decode("ascii"))
        clear_master_key_cache()

        with pytest.raises(CryptoError):
            decrypt_api_key(ciphertext, nonce, version)

    def test_unknown_version_rejected(self):
        ciphertext, nonce, _, _ = encrypt_api_key(SECRET)

        with pytest.raises(CryptoError, match="Unknown key version"):
            decrypt_api_key(ciphertext, nonce, 99)

    def test_short_nonce_rejected(self):
        ciphertext, nonce, version, _ = encrypt_api_key(SECRET)

        with pytest.raises(CryptoError, match="Nonce"):
            decrypt_api_key(ciphertext, nonce[:12], version)


def test_fingerprint_is_last_4_chars():
    assert compute_key_fingerprint("sk-abcdefghijklmnop") == "mnop"
