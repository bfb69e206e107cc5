"""
Order Ledger
============
The only access path to order records and the payment-reference index.

Key layout:
  order:{orderId}            -> OrderRecord JSON (camelCase)
  payment:{paymentReference} -> orderId
"""

from typing import Optional

import structlog
from pydantic import ValidationError

from tape16.errors import LedgerError
from tape16.schemas.orders import OrderRecord
from tape16.storage.kv_store import IKeyValueStore

logger = structlog.get_logger().bind(component="order_ledger")


def order_key(order_id: str) -> str:
    return f"order:{order_id}"


def payment_key(payment_reference: str) -> str:
    return f"payment:{payment_reference}"


class OrderLedger:
    """Order records and the payment-reference index over a key-value store"""

    def __init__(self, store: IKeyValueStore):
        self.store = store

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        raw = await self.store.get(order_key(order_id))
        if not raw:
            return None
        try:
            return OrderRecord.model_validate_json(raw)
        except ValidationError as e:
            # Unreadable records are treated as missing
            logger.error("order_record_corrupt", order_id=order_id, error=str(e))
            return None

    async def create_order(self, order: OrderRecord) -> OrderRecord:
        """
        Create-if-absent. Returns the record that ends up stored: the given
        one, or the one a concurrent writer persisted first. Raises LedgerError
        when the key exists but cannot be read back.
        """
        written = await self.store.set_if_absent(order_key(order.order_id), order.to_json())
        if written:
            return order
        existing = await self.get_order(order.order_id)
        if existing is None:
            # Key is taken but unreadable; the new serial was never stored
            logger.error("order_create_blocked", order_id=order.order_id)
            raise LedgerError()
        return existing

    async def save_order(self, order: OrderRecord) -> OrderRecord:
        """Overwrite an existing record (revocation only)."""
        await self.store.set(order_key(order.order_id), order.to_json())
        return order

    async def get_order_id_for_payment(self, payment_reference: str) -> Optional[str]:
        order_id = await self.store.get(payment_key(payment_reference))
        return order_id or None

    async def link_payment(self, payment_reference: str, order_id: str) -> None:
        await self.store.set(payment_key(payment_reference), order_id)

    async def get_order_by_payment(self, payment_reference: str) -> Optional[OrderRecord]:
        order_id = await self.get_order_id_for_payment(payment_reference)
        if not order_id:
            return None
        return await self.get_order(order_id)
