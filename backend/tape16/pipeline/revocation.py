"""
Revocation Engine
=================
Flags an order's serial as revoked after a refund. One-way, once.

Resolution order for the affected order:
  1. payment_intent carried on the event object
  2. charge id on the event object -> Stripe charge lookup -> payment_intent
  3. payment-reference index -> order id

Anything that cannot be resolved is ignored, not failed: Stripe would
otherwise keep redelivering an event the ledger has no record of.
"""

import uuid
from typing import Optional, Union

import structlog

from tape16.schemas.orders import RevokeResult
from tape16.schemas.stripe_events import ChargeRefundedEvent, RefundUpdatedEvent
from tape16.services.stripe_client import StripeProcessor
from tape16.storage.order_ledger import OrderLedger

RefundEvent = Union[ChargeRefundedEvent, RefundUpdatedEvent]


def revocation_reason(event_type: str) -> str:
    return event_type.replace(".", "_")


class RevocationEngine:

    def __init__(self, ledger: OrderLedger, processor: StripeProcessor):
        self.ledger = ledger
        self.processor = processor
        self._base_logger = structlog.get_logger()

    def _get_logger(self, correlation_id: str = None):
        return self._base_logger.bind(
            component="revocation",
            correlation_id=correlation_id or str(uuid.uuid4()),
        )

    async def handle_refund_event(self, event: RefundEvent, correlation_id: str = None) -> RevokeResult:
        log = self._get_logger(correlation_id)
        event_type = event.type
        obj = event.data.object

        if isinstance(event, ChargeRefundedEvent):
            if not obj.has_refund:
                return self._ignored(log, event_type, "charge_not_refunded")
            charge_id = obj.id
        else:
            # pending / requires_action / failed refunds must not revoke
            if not obj.succeeded:
                return self._ignored(log, event_type, f"refund_status_{obj.status or 'unknown'}")
            charge_id = obj.charge

        payment_reference = await self._resolve_payment_reference(obj.payment_intent, charge_id, log)
        if not payment_reference:
            return self._ignored(log, event_type, "payment_reference_unresolved")

        return await self.revoke_by_payment_reference(
            payment_reference, revocation_reason(event_type), event_type, correlation_id
        )

    async def _resolve_payment_reference(
        self,
        payment_intent: Optional[str],
        charge_id: Optional[str],
        log,
    ) -> Optional[str]:
        if payment_intent:
            return payment_intent
        if not charge_id or not self.processor.configured:
            return None
        charge = await self.processor.retrieve_charge(charge_id)
        if not charge:
            return None
        reference = charge.get("payment_intent")
        if isinstance(reference, dict):
            reference = reference.get("id")
        log.info("payment_reference_from_charge", charge_id=charge_id, payment_reference=reference)
        return reference or None

    async def revoke_by_payment_reference(
        self,
        payment_reference: str,
        reason: str,
        event_type: str = "manual",
        correlation_id: str = None,
    ) -> RevokeResult:
        log = self._get_logger(correlation_id)
        order = await self.ledger.get_order_by_payment(payment_reference)
        if order is None:
            return self._ignored(log, event_type, "order_not_found", payment_reference=payment_reference)

        if order.revoked:
            log.info("order_already_revoked", order_id=order.order_id,
                     revoked_reason=order.revoked_reason)
            return RevokeResult(event_type=event_type, order_id=order.order_id, newly_revoked=False)

        await self.ledger.save_order(order.revoke(reason))
        log.info("order_revoked", order_id=order.order_id, reason=reason,
                 payment_reference=payment_reference)
        return RevokeResult(event_type=event_type, order_id=order.order_id, newly_revoked=True)

    def _ignored(self, log, event_type: str, reason: str, **context) -> RevokeResult:
        log.info("refund_ignored", event_type=event_type, reason=reason, **context)
        return RevokeResult(event_type=event_type, ignored=True, reason=reason)
