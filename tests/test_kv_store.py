"""Key-value backends behind the order ledger."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, RedisError

from tape16.errors import LedgerError
from tape16.storage import InMemoryKeyValueStore, RedisKeyValueStore


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_set_if_absent_uses_set_nx(redis_client):
    store = RedisKeyValueStore(client=redis_client)

    assert await store.set_if_absent("order:cs_1", "{}") is True
    redis_client.set.assert_awaited_once_with("order:cs_1", "{}", nx=True)


@pytest.mark.asyncio
async def test_set_if_absent_reports_existing_key(redis_client):
    redis_client.set.return_value = None
    store = RedisKeyValueStore(client=redis_client)

    assert await store.set_if_absent("order:cs_1", "{}") is False


@pytest.mark.asyncio
async def test_plain_set_overwrites(redis_client):
    store = RedisKeyValueStore(client=redis_client)

    await store.set("payment:pi_1", "cs_1")

    redis_client.set.assert_awaited_once_with("payment:pi_1", "cs_1")


@pytest.mark.asyncio
async def test_get_passes_through(redis_client):
    redis_client.get.return_value = "cs_1"
    store = RedisKeyValueStore(client=redis_client)

    assert await store.get("payment:pi_1") == "cs_1"


@pytest.mark.parametrize("method,args", [
    ("get", ("order:cs_1",)),
    ("set", ("order:cs_1", "{}")),
    ("set_if_absent", ("order:cs_1", "{}")),
])
@pytest.mark.asyncio
async def test_redis_errors_become_ledger_errors(redis_client, method, args):
    redis_client.get.side_effect = RedisConnectionError("connection refused")
    redis_client.set.side_effect = RedisError("READONLY")
    store = RedisKeyValueStore(client=redis_client)

    with pytest.raises(LedgerError) as exc_info:
        await getattr(store, method)(*args)

    assert exc_info.value.message == "Order ledger unavailable"
    assert "refused" not in exc_info.value.message


@pytest.mark.asyncio
async def test_close_releases_connection(redis_client):
    await RedisKeyValueStore(client=redis_client).close()

    redis_client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_in_memory_set_if_absent():
    store = InMemoryKeyValueStore()

    assert await store.set_if_absent("order:cs_1", "first") is True
    assert await store.set_if_absent("order:cs_1", "second") is False
    assert await store.get("order:cs_1") == "first"

    await store.set("order:cs_1", "third")
    assert await store.get("order:cs_1") == "third"
