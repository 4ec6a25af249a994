"""
Secure key-value storage for the lock screen.

The contract every backend follows:
    read    -> returns None on any failure, never raises
    write   -> logs and re-raises failures to the caller
    delete  -> best effort, failures are logged and suppressed
"""

import asyncio
import json
import logging
import os
import shutil
import struct
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import BinaryIO, Dict, Optional

from cryptography.exceptions import InvalidTag

from . import config
from .crypto import CryptoManager
from .utils import get_default_store_path, get_device_passphrase, set_owner_only_permissions

logger = logging.getLogger(__name__)


class SecureStorage(ABC):
    """Asynchronous secure key-value store."""

    @abstractmethod
    async def read(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def write(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class InMemoryStorage(SecureStorage):
    """Non-persistent store, for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def write(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class EncryptedFileStorage(SecureStorage):
    """
    Stores all keys in a single AES-256-GCM encrypted file.

    File layout (little-endian lengths):
        MAGIC | VERSION | len salt | salt | len nonce | nonce | len tag | tag | len ct | ct
    The plaintext is a JSON object mapping keys to string values.
    """

    def __init__(self, filepath: Optional[str] = None, passphrase: Optional[str] = None,
                 crypto: Optional[CryptoManager] = None):
        """
        Args:
            filepath: Path of the encrypted file, defaults to ~/.hss_lock/secure_store.enc
            passphrase: Secret the key is derived from, defaults to a device-bound value
            crypto: CryptoManager to use, mostly for cheaper KDF settings in tests
        """
        self.filepath = filepath or get_default_store_path()
        self._passphrase = passphrase if passphrase is not None else get_device_passphrase()
        self.crypto = crypto or CryptoManager()
        self._lock = threading.Lock()
        self._salt: Optional[bytes] = None
        self._keys: Dict[bytes, bytes] = {}

    async def read(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read_value, key)
        except Exception as e:
            logger.error(f"SecureStorage read error: {e}", exc_info=True)
            return None

    async def write(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._write_value, key, value)
        except Exception as e:
            logger.error(f"SecureStorage write error: {e}", exc_info=True)
            raise

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._delete_value, key)
        except Exception as e:
            logger.error(f"SecureStorage delete error: {e}", exc_info=True)

    def _read_value(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def _write_value(self, key: str, value: str) -> None:
        with self._lock:
            try:
                entries = self._load()
            except (ValueError, InvalidTag) as e:
                logger.warning(f"Discarding unreadable store file {self.filepath}: {e}")
                self._salt = None
                entries = {}
            entries[key] = value
            self._save(entries)

    def _delete_value(self, key: str) -> None:
        with self._lock:
            if not os.path.exists(self.filepath):
                return
            entries = self._load()
            if key in entries:
                del entries[key]
                self._save(entries)

    def _derive(self, salt: bytes) -> bytes:
        if salt not in self._keys:
            self._keys[salt] = self.crypto.derive_key(self._passphrase, salt)
        return self._keys[salt]

    def _load(self) -> Dict[str, str]:
        """
        Decrypt the store file.

        Raises:
            ValueError: If the file is not a store file or is truncated
            InvalidTag: If the passphrase is wrong or the data was tampered with
        """
        if not os.path.exists(self.filepath):
            return {}

        with open(self.filepath, 'rb') as f:
            magic = f.read(4)
            if magic != config.STORE_MAGIC_BYTES:
                raise ValueError(f"Magic bytes mismatch. Expected {config.STORE_MAGIC_BYTES}, got {magic}")

            version = self._read_uint(f)
            if version != config.STORE_FORMAT_VERSION:
                raise ValueError(f"Unsupported store version {version}")

            salt = self._read_chunk(f)
            nonce = self._read_chunk(f)
            tag = self._read_chunk(f)
            ciphertext = self._read_chunk(f)

        plaintext = self.crypto.decrypt(ciphertext, self._derive(salt), nonce, tag)
        data = json.loads(plaintext.decode('utf-8'))
        if not isinstance(data, dict):
            raise ValueError("Store payload is not a JSON object")

        self._salt = salt
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, entries: Dict[str, str]) -> None:
        """Encrypt entries and atomically replace the store file."""
        if self._salt is None:
            self._salt = self.crypto.generate_salt()

        plaintext = json.dumps(entries).encode('utf-8')
        ciphertext, nonce, tag = self.crypto.encrypt(plaintext, self._derive(self._salt))

        directory = os.path.dirname(self.filepath) or '.'
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=os.path.basename(self.filepath) + '.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(config.STORE_MAGIC_BYTES)
                f.write(struct.pack('<I', config.STORE_FORMAT_VERSION))
                for chunk in (self._salt, nonce, tag, ciphertext):
                    f.write(struct.pack('<I', len(chunk)))
                    f.write(chunk)

            shutil.move(tmp_path, self.filepath)

            if not set_owner_only_permissions(self.filepath):
                logger.warning(f"Failed to set secure file permissions for store: {self.filepath}")

        except Exception as e:
            logger.error(f"Error saving store file {self.filepath}: {e}", exc_info=True)
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    @staticmethod
    def _read_uint(f: BinaryIO) -> int:
        raw = f.read(4)
        if len(raw) != 4:
            raise ValueError("Truncated store file")
        return struct.unpack('<I', raw)[0]

    @classmethod
    def _read_chunk(cls, f: BinaryIO) -> bytes:
        size = cls._read_uint(f)
        chunk = f.read(size)
        if len(chunk) != size:
            raise ValueError("Truncated store file")
        return chunk

