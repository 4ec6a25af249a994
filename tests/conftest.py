import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1]))

import datetime
from typing import Dict, List, Optional, Tuple

import pytest

from hss_lock import config
from hss_lock.crypto import CryptoManager
from hss_lock.storage import EncryptedFileStorage, InMemoryStorage

NOW = datetime.datetime(2025, 6, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


class RecordingStorage(InMemoryStorage):
    """
    In-memory store that records every call and can simulate failures.

    fail_read / fail_delete follow the storage contract (absent value, silent no-op),
    fail_write raises like a real write failure, raise_on_read and raise_on_delete
    break the contract to exercise unexpected errors.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.calls: List[Tuple[str, str]] = []
        self.fail_read = False
        self.fail_write = False
        self.fail_delete = False
        self.raise_on_read = False
        self.raise_on_delete = False

    @property
    def data(self) -> Dict[str, str]:
        return self._data

    async def read(self, key: str) -> Optional[str]:
        self.calls.append(("read", key))
        if self.raise_on_read:
            raise RuntimeError("storage backend crashed")
        if self.fail_read:
            return None
        return await super().read(key)

    async def write(self, key: str, value: str) -> None:
        self.calls.append(("write", key))
        if self.fail_write:
            raise OSError("disk full")
        await super().write(key, value)

    async def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        if self.raise_on_delete:
            raise RuntimeError("storage backend crashed")
        if self.fail_delete:
            return
        await super().delete(key)


@pytest.fixture()
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture()
def stamped_storage():
    """Build a RecordingStorage holding a timestamp of the given age relative to NOW."""
    def _make(age: datetime.timedelta) -> RecordingStorage:
        return RecordingStorage({config.AUTH_TIMESTAMP_KEY: (NOW - age).isoformat()})
    return _make


@pytest.fixture()
def clock():
    return lambda: NOW


@pytest.fixture()
def fast_crypto() -> CryptoManager:
    # Minimal Argon2 cost keeps the file store tests quick
    return CryptoManager(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture()
def store_path(tmp_path) -> str:
    return str(tmp_path / "store" / config.DEFAULT_STORE_FILE)


@pytest.fixture()
def file_storage(store_path, fast_crypto) -> EncryptedFileStorage:
    return EncryptedFileStorage(store_path, passphrase="test-passphrase", crypto=fast_crypto)
