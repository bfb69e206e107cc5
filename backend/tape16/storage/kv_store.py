"""
Key-Value Store Backends
========================
Minimal get / set / create-if-absent interface behind the order ledger.

- InMemoryKeyValueStore: asyncio-locked dict (tests, local development)
- RedisKeyValueStore: redis.asyncio, SET NX for create-if-absent

pip install redis structlog
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
import structlog

from tape16.errors import LedgerError

logger = structlog.get_logger().bind(component="kv_store")


class IKeyValueStore(ABC):
    """Durable string key-value store"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def set_if_absent(self, key: str, value: str) -> bool:
        """Write only when the key does not exist. Returns True if written."""
        pass


class InMemoryKeyValueStore(IKeyValueStore):
    """Process-local store; data is lost on restart"""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            self._data[key] = value

    async def set_if_absent(self, key: str, value: str) -> bool:
        async with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True


class RedisKeyValueStore(IKeyValueStore):
    """
    Redis-backed store.
    Connection errors are wrapped in LedgerError so the boundary can answer
    with the uniform envelope instead of leaking driver messages.
    """

    def __init__(self, url: str = None, client: "redis.Redis" = None):
        self._redis = client or redis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._redis.get(key)
        except RedisError as e:
            logger.error("redis_get_error", key=key, error=str(e))
            raise LedgerError() from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self._redis.set(key, value)
        except RedisError as e:
            logger.error("redis_set_error", key=key, error=str(e))
            raise LedgerError() from e

    async def set_if_absent(self, key: str, value: str) -> bool:
        try:
            return bool(await self._redis.set(key, value, nx=True))
        except RedisError as e:
            logger.error("redis_set_error", key=key, error=str(e))
            raise LedgerError() from e

    async def close(self) -> None:
        await self._redis.aclose()
