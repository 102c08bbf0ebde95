# =============================================================================
# FILE: src/expressflow/services/persistence.py
# Persistence port and its adapters (memory, JSON file, Redis)
# =============================================================================

import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from redis.exceptions import RedisError

from expressflow.config import Settings, settings as default_settings
from expressflow.exceptions import StorageError
from expressflow.services.redis_client import get_redis_client

logger = logging.getLogger(__name__)


class PersistencePort(Protocol):
    """One serialized collection. `load` returns None when nothing was saved yet."""

    def load(self) -> Optional[str]:
        ...

    def save(self, payload: str) -> None:
        ...


class MemoryPersistence:
    def __init__(self, payload: Optional[str] = None):
        self.payload = payload

    def load(self) -> Optional[str]:
        return self.payload

    def save(self, payload: str) -> None:
        self.payload = payload


class JsonFilePersistence:
    """Collection stored as a JSON file; writes go through a temp file and rename."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e

    def save(self, payload: str) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e


class RedisPersistence:
    """Collection stored under a single Redis key."""

    def __init__(self, key: str, client=None, url: Optional[str] = None):
        self.key = key
        self.url = url
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_redis_client(self.url)
        return self._client

    def load(self) -> Optional[str]:
        try:
            return self.client.get(self.key)
        except RedisError as e:
            raise StorageError(f"Cannot read Redis key {self.key}: {e}") from e

    def save(self, payload: str) -> None:
        try:
            self.client.set(self.key, payload)
        except RedisError as e:
            raise StorageError(f"Cannot write Redis key {self.key}: {e}") from e


def build_persistence(key: str, config: Optional[Settings] = None) -> PersistencePort:
    """Adapter for one collection, chosen by STORAGE_BACKEND."""
    config = config or default_settings
    backend = config.STORAGE_BACKEND.lower()
    logger.debug(f"Using {backend} storage for {key}")

    if backend == "memory":
        return MemoryPersistence()
    if backend == "file":
        return JsonFilePersistence(Path(config.STORAGE_DIR) / f"{key}.json")
    if backend == "redis":
        return RedisPersistence(f"{config.REDIS_KEY_PREFIX}{key}", url=config.REDIS_URL)

    raise ValueError(f"Unknown STORAGE_BACKEND: {config.STORAGE_BACKEND}")
