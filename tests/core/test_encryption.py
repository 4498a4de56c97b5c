# tests/core/test_encryption.py

import base64
import pytest
from dblocator.core.encryption import SecretCipher

KEY = "unit-test-passphrase"

def test_encrypt_then_decrypt_returns_plaintext():
    cipher = SecretCipher(KEY)
    token = cipher.encrypt("P@ssw0rd1")
    assert token != "P@ssw0rd1"
    assert cipher.decrypt(token) == "P@ssw0rd1"

def test_random_iv_gives_distinct_ciphertexts():
    """The same plaintext encrypts differently each time but decrypts identically."""
    cipher = SecretCipher(KEY)
    first, second = cipher.encrypt("same"), cipher.encrypt("same")
    assert first != second
    assert cipher.decrypt(first) == cipher.decrypt(second) == "same"

def test_legacy_zero_iv_is_deterministic_and_unprefixed():
    cipher = SecretCipher(KEY, legacy_zero_iv=True)
    token = cipher.encrypt("same")
    assert token == cipher.encrypt("same")
    # One AES block, no stored IV
    assert len(base64.b64decode(token)) == 16
    assert cipher.decrypt(token) == "same"

def test_without_key_values_pass_through():
    cipher = SecretCipher(None)
    assert cipher.enabled is False
    assert cipher.encrypt("plain") == "plain"
    assert cipher.decrypt("plain") == "plain"

def test_decrypt_rejects_non_base64():
    with pytest.raises(ValueError, match="Invalid Base64 string"):
        SecretCipher(KEY).decrypt("not base64 !!")

def test_decrypt_with_wrong_key_fails():
    token = SecretCipher(KEY).encrypt("P@ssw0rd1")
    with pytest.raises(ValueError) as exc_info:
        SecretCipher("another-passphrase").decrypt(token)
    assert "Decryption failed" in str(exc_info.value)

def test_decrypt_rejects_truncated_payload():
    token = SecretCipher(KEY).encrypt("P@ssw0rd1")
    truncated = base64.b64encode(base64.b64decode(token)[:20]).decode()
    with pytest.raises(ValueError, match="Decryption failed"):
        SecretCipher(KEY).decrypt(truncated)
