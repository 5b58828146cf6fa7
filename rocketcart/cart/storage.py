"""
Cart snapshot stores.

A store is an opaque key-value blob store: ``get(key)`` returns the stored
string or None, ``set(key, value)`` overwrites it. The engine owns encoding.
"""
import asyncio
import json
import os
from typing import Optional, Protocol

from upstash_redis.asyncio import Redis as AsyncRedis

from rocketcart.config import Settings
from rocketcart.errors import ConfigurationError
from rocketcart.db import get_redis
from rocketcart.logging import get_logger

logger = get_logger(__name__)


class CartStorage(Protocol):
    """Key-value blob store holding cart snapshots."""

    async def get(self, key: str) -> Optional[str]:
        """Stored value, or None if the key is absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Overwrite the value stored under key."""
        ...


class MemoryCartStorage:
    """In-process store. Snapshots live as long as the object."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


class FileCartStorage:
    """
    JSON file store, one entry per key.

    The file is rewritten atomically and readable only by its owner.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def _read_all(self) -> dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable cart file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring cart file {self.path}: expected a JSON object")
            return {}
        return data

    def _write_entry(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        tmp_path = f"{self.path}.tmp"
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        # A stale temp file keeps its old mode through O_CREAT
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read_all)
        value = data.get(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write_entry, key, value)


class RedisCartStorage:
    """Upstash Redis store with optional expiry for abandoned carts."""

    def __init__(self, redis: AsyncRedis, ttl_seconds: Optional[int] = None) -> None:
        self._redis = redis
        self.ttl_seconds = ttl_seconds

    async def get(self, key: str) -> Optional[str]:
        data = await self._redis.get(key)
        if data is None:
            return None
        return data.decode("utf-8") if isinstance(data, bytes) else str(data)

    async def set(self, key: str, value: str) -> None:
        await self._redis.set(key, value, ex=self.ttl_seconds)

    async def aclose(self) -> None:
        await self._redis.close()


def get_cart_storage(settings: Settings) -> CartStorage:
    """
    Build the store selected by CART_STORAGE.

    Raises:
        ConfigurationError: If the backend is unknown or not configured
    """
    backend = settings.storage_backend
    if backend == "memory":
        return MemoryCartStorage()
    if backend == "file":
        return FileCartStorage(settings.cart_file_path)
    if backend == "redis":
        return RedisCartStorage(get_redis(settings), ttl_seconds=settings.cart_ttl_seconds)
    raise ConfigurationError(f"Unknown cart storage backend: {backend}")


__all__ = [
    "CartStorage",
    "MemoryCartStorage",
    "FileCartStorage",
    "RedisCartStorage",
    "get_cart_storage",
]
