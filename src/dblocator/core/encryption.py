# src/dblocator/core/encryption.py

import base64
import binascii
import os
from typing import Optional
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from dblocator.core.config import settings

KEY_SIZE = 32
BLOCK_SIZE = 16

class SecretCipher:
    """
    AES-256-CBC encryption for the stored database user passwords.

    The key is the caller's passphrase right-padded with spaces (or truncated)
    to 32 bytes. Without a passphrase both directions are identity functions,
    i.e. passwords are stored in plaintext.

    Ciphertexts are base64(iv + ciphertext) with a random IV. With
    ``legacy_zero_iv`` the IV is all zeros and is not stored, which matches
    rows written by older deployments.
    """
    def __init__(self, encryption_key: Optional[str] = None, legacy_zero_iv: bool = False):
        self.legacy_zero_iv = legacy_zero_iv
        self._key: Optional[bytes] = None
        if encryption_key:
            self._key = encryption_key.encode("utf-8").ljust(KEY_SIZE, b" ")[:KEY_SIZE]

    @property
    def enabled(self) -> bool:
        return self._key is not None

    def encrypt(self, plaintext: str) -> str:
        if plaintext is None:
            raise ValueError("Plain text is required")
        if not self.enabled:
            return plaintext

        iv = bytes(BLOCK_SIZE) if self.legacy_zero_iv else os.urandom(BLOCK_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        encrypted = encryptor.update(padded) + encryptor.finalize()

        payload = encrypted if self.legacy_zero_iv else iv + encrypted
        return base64.b64encode(payload).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypts a value produced by :meth:`encrypt`.
        Raises:
            ValueError: If the value is not base64 or cannot be decrypted with this key.
        """
        if not self.enabled:
            return ciphertext

        try:
            payload = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Invalid Base64 string")

        if self.legacy_zero_iv:
            iv, encrypted = bytes(BLOCK_SIZE), payload
        else:
            iv, encrypted = payload[:BLOCK_SIZE], payload[BLOCK_SIZE:]

        if not encrypted or len(encrypted) % BLOCK_SIZE:
            raise ValueError("Decryption failed. Invalid key or corrupted data.")

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(encrypted) + decryptor.finalize()
        try:
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            raise ValueError("Decryption failed. Invalid key or corrupted data.")

def get_cipher() -> SecretCipher:
    return SecretCipher(settings.ENCRYPTION_KEY, settings.ENCRYPTION_LEGACY_ZERO_IV)
