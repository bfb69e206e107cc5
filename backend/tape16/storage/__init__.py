# tape16/storage/__init__.py
# ============================================================================
# TAPE 16 SERIAL SERVICE - STORAGE MODULE
# ============================================================================
# Key-value backends and the order ledger built on top of them
# ============================================================================

from typing import Optional

import structlog

from tape16.storage.kv_store import (
    IKeyValueStore,
    InMemoryKeyValueStore,
    RedisKeyValueStore,
)
from tape16.storage.order_ledger import OrderLedger

logger = structlog.get_logger().bind(component="storage")


def build_store(redis_url: Optional[str]) -> IKeyValueStore:
    """Redis when configured, otherwise a process-local store."""
    if redis_url:
        logger.info("ledger_backend", backend="redis", url=redis_url[:20] + "...")
        return RedisKeyValueStore(redis_url)
    logger.warning("ledger_backend", backend="in_memory", reason="REDIS_URL not set")
    return InMemoryKeyValueStore()


__all__ = [
    "IKeyValueStore",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "OrderLedger",
    "build_store",
]
