import hashlib
import logging
import time
from typing import Callable, Dict, List, Optional

from redis.asyncio import Redis

from config import settings
from models import CacheEntry, MenuItem

logger = logging.getLogger(__name__)


class MemoryStorage:
    """Process-local key-value storage."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisStorage:
    """Key-value storage backed by Redis, shared between worker processes."""

    def __init__(self, client: Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStorage":
        return cls(Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str) -> None:
        await self.client.set(key, value)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)


class ManifestCache:
    """Time-boxed cache of the last successfully fetched manifest.

    The whole entry is serialized before a single ``set`` so a concurrent
    reader sees either the previous entry or the new one. Storage errors are
    logged and otherwise ignored: with a broken store every fetch simply goes
    to the network.

    Entries are kept per upstream credential (``scope``); the credential
    itself is hashed into the key rather than stored.
    """

    def __init__(
        self,
        storage=None,
        clock: Callable[[], float] = time.time,
        ttl_seconds: int = None,
        key: str = None,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.clock = clock
        self.ttl_seconds = settings.MENU_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.key = key or settings.MENU_CACHE_KEY

    def entry_key(self, scope: Optional[str] = None) -> str:
        if not scope:
            return self.key
        digest = hashlib.sha256(scope.encode()).hexdigest()[:16]
        return f"{self.key}:{digest}"

    async def read(self, ignore_expiry: bool = False, scope: Optional[str] = None) -> Optional[List[MenuItem]]:
        """Return the cached payload, or None when absent, unreadable or expired."""
        try:
            raw = await self.storage.get(self.entry_key(scope))
            if not raw:
                return None
            entry = CacheEntry.model_validate_json(raw)
        except Exception as e:
            logger.error(f"Failed to read menu cache: {e}")
            return None

        age = self.clock() - entry.timestamp
        if not ignore_expiry and age > self.ttl_seconds:
            return None
        return entry.payload

    async def write(self, items: List[MenuItem], scope: Optional[str] = None) -> None:
        try:
            entry = CacheEntry(payload=items, timestamp=self.clock())
            await self.storage.set(self.entry_key(scope), entry.model_dump_json())
        except Exception as e:
            logger.error(f"Failed to cache menu: {e}")

    async def clear(self, scope: Optional[str] = None) -> None:
        try:
            await self.storage.delete(self.entry_key(scope))
        except Exception as e:
            logger.error(f"Failed to clear menu cache: {e}")


def create_storage(backend: str = None):
    """Build the storage backend named by MENU_CACHE_BACKEND."""
    backend = (backend or settings.MENU_CACHE_BACKEND).strip().lower()
    if backend == "redis":
        logger.info("Using Redis menu cache storage")
        return RedisStorage.from_url(settings.REDIS_URL)
    if backend != "memory":
        logger.warning(f"Unknown cache backend '{backend}', falling back to memory")
    return MemoryStorage()
