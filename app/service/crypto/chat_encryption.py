import logging
import os
from typing import NamedTuple

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

import app.config.config as configs

logger = logging.getLogger(__name__)

IV_LENGTH = 16


class EncryptedMessage(NamedTuple):
    encrypted_content: str
    iv: str


class ChatCipher:
    """AES-256-CBC with PKCS7 padding. Ciphertext and IV are stored as hex."""

    def __init__(self, key_hex: str = configs.CHAT_ENCRYPTION_KEY):
        key = bytes.fromhex(key_hex)
        if len(key) != 32:
            raise ValueError("chat encryption key must be 32 bytes (64 hex characters)")
        self._key = key

    def encrypt(self, message: str) -> EncryptedMessage:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(message.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return EncryptedMessage(ciphertext.hex(), iv.hex())

    def decrypt(self, encrypted_content: str, iv: str) -> str:
        """Return the plaintext, or a placeholder when the row cannot be decrypted."""
        if not encrypted_content or not iv:
            return configs.DECRYPT_MISSING_PLACEHOLDER

        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(bytes.fromhex(iv))).decryptor()
            padded = decryptor.update(bytes.fromhex(encrypted_content)) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            logger.warning("could not decrypt message iv=%s...", iv[:10])
            return configs.DECRYPT_FAILED_PLACEHOLDER
