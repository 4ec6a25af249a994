"""
Cryptographic operations backing the encrypted secure store.
"""

import os
from typing import Tuple
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives import constant_time
from argon2.low_level import hash_secret_raw, Type

from . import config


class CryptoManager:
    """Handles key derivation and authenticated encryption for the store."""

    def __init__(self,
                 time_cost: int = config.ARGON2_TIME_COST,
                 memory_cost: int = config.ARGON2_MEMORY_COST,
                 parallelism: int = config.ARGON2_PARALLELISM):
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism

    def generate_salt(self) -> bytes:
        """Generate a cryptographically secure random salt."""
        return os.urandom(config.SALT_SIZE)

    def derive_key(self, passphrase: str, salt: bytes) -> bytes:
        """
        Derive an encryption key from a passphrase using Argon2id.

        Args:
            passphrase: Secret the store key is bound to
            salt: Random salt stored alongside the ciphertext

        Returns:
            KEY_SIZE-byte encryption key
        """
        return hash_secret_raw(
            secret=passphrase.encode('utf-8'),
            salt=salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            hash_len=config.KEY_SIZE,
            type=Type.ID
        )

    def encrypt(self, plaintext: bytes, key: bytes) -> Tuple[bytes, bytes, bytes]:
        """
        Encrypt data using AES-256-GCM.

        Returns:
            Tuple of (ciphertext, nonce, tag)
        """
        nonce = os.urandom(config.NONCE_SIZE)
        sealed = AESGCM(key).encrypt(nonce, plaintext, None)
        # AESGCM appends the tag to the ciphertext
        return sealed[:-config.TAG_SIZE], nonce, sealed[-config.TAG_SIZE:]

    def decrypt(self, ciphertext: bytes, key: bytes, nonce: bytes, tag: bytes) -> bytes:
        """
        Decrypt data using AES-256-GCM.

        Raises:
            InvalidTag: If authentication fails (wrong key or tampered data)
        """
        return AESGCM(key).decrypt(nonce, ciphertext + tag, None)

    def secure_compare(self, a: str, b: str) -> bool:
        """Constant-time, exact comparison of two strings."""
        # surrogatepass keeps lone surrogates comparable instead of raising
        return constant_time.bytes_eq(a.encode('utf-8', 'surrogatepass'),
                                      b.encode('utf-8', 'surrogatepass'))
