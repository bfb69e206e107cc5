"""
Issuance Engine
===============
Mints, reuses and resends serials.

- issue_or_reuse: idempotent upsert keyed by order id; the first stored
  serial wins and is never regenerated
- resend_serial: self-service re-delivery with an outcome-independent reply
- recover_from_upstream: heals a missed webhook by asking Stripe directly
"""

import uuid
from typing import Optional

import structlog
from fastapi import BackgroundTasks

from tape16.errors import InvalidInput
from tape16.schemas.orders import IssueResult, OrderRecord, ResendResult
from tape16.schemas.stripe_events import CheckoutSession
from tape16.services.notifications import NotificationDispatcher
from tape16.services.serials import create_serial
from tape16.services.stripe_client import StripeProcessor
from tape16.storage.order_ledger import OrderLedger

GENERIC_RESEND_MESSAGE = "If a matching purchase exists, the serial email has been sent."
RECOVERY_SOURCE = "manual_recovery"


def clean_string(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def clean_email(value) -> str:
    out = clean_string(value).lower()
    return out if "@" in out else ""


class IssuanceEngine:
    """
    Example:
        engine = IssuanceEngine(ledger, processor, notifier)
        result = await engine.issue_or_reuse("cs_123", "buyer@example.com", "checkout.session.completed")
    """

    def __init__(
        self,
        ledger: OrderLedger,
        processor: StripeProcessor,
        notifier: NotificationDispatcher,
        serial_prefix: str = "T16",
    ):
        self.ledger = ledger
        self.processor = processor
        self.notifier = notifier
        self.serial_prefix = serial_prefix
        self._base_logger = structlog.get_logger()

    def _get_logger(self, correlation_id: str = None):
        return self._base_logger.bind(
            component="issuance",
            correlation_id=correlation_id or str(uuid.uuid4()),
        )

    # =========================================================================
    # ISSUANCE
    # =========================================================================

    async def issue_or_reuse(
        self,
        order_id: str,
        email: str,
        source: str,
        payment_reference: Optional[str] = None,
        correlation_id: str = None,
    ) -> IssueResult:
        log = self._get_logger(correlation_id)
        order_id = clean_string(order_id)
        email = clean_email(email)
        payment_reference = clean_string(payment_reference) or None
        if not order_id or not email:
            raise InvalidInput("Missing order ID or customer email")

        existing = await self.ledger.get_order(order_id)
        if existing:
            # Reuse is keyed by order id only; the stored email is not compared
            await self._link_payment(existing, payment_reference)
            log.info("order_reused", order_id=order_id, source=source)
            return IssueResult(order=existing, issued=False)

        order = OrderRecord(
            order_id=order_id,
            email=email,
            serial=create_serial(self.serial_prefix),
            payment_reference=payment_reference,
            source=source,
        )
        stored = await self.ledger.create_order(order)
        issued = stored.serial == order.serial
        await self._link_payment(stored, payment_reference)

        if issued:
            log.info("order_issued", order_id=order_id, source=source,
                     payment_reference=payment_reference)
        else:
            log.info("order_create_race_lost", order_id=order_id, source=source)
        return IssueResult(order=stored, issued=issued)

    async def _link_payment(self, order: OrderRecord, payment_reference: Optional[str]) -> None:
        reference = payment_reference or order.payment_reference
        if not reference:
            return
        if await self.ledger.get_order_id_for_payment(reference) is None:
            await self.ledger.link_payment(reference, order.order_id)

    # =========================================================================
    # RECOVERY
    # =========================================================================

    async def recover_from_upstream(self, order_id: str, correlation_id: str = None) -> Optional[OrderRecord]:
        """Issue from Stripe's own record of a paid session the webhook never delivered."""
        log = self._get_logger(correlation_id)
        if not self.processor.configured:
            return None

        raw = await self.processor.retrieve_session(order_id)
        if not raw:
            return None
        session = CheckoutSession.model_validate(raw)
        if not session.is_paid:
            log.info("recovery_session_unpaid", order_id=order_id,
                     payment_status=session.payment_status)
            return None

        email = clean_email(session.buyer_email)
        if not email:
            log.warning("recovery_missing_email", order_id=order_id)
            return None

        result = await self.issue_or_reuse(
            order_id=session.id or order_id,
            email=email,
            source=RECOVERY_SOURCE,
            payment_reference=session.payment_intent,
            correlation_id=correlation_id,
        )
        log.info("order_recovered", order_id=result.order.order_id, issued=result.issued)
        return result.order

    # =========================================================================
    # SELF-SERVICE RESEND
    # =========================================================================

    async def resend_serial(
        self,
        order_id: str,
        email: str,
        background: Optional[BackgroundTasks] = None,
    ) -> ResendResult:
        """
        Never distinguishes unknown, revoked or foreign orders from a real
        send; only email_queued differs, and only for the rightful owner.
        """
        correlation_id = str(uuid.uuid4())
        log = self._get_logger(correlation_id)
        order_id = clean_string(order_id)
        email = clean_email(email)
        if not order_id or not email:
            raise InvalidInput("orderId and email are required")

        order = await self.ledger.get_order(order_id)
        if order is None:
            order = await self.recover_from_upstream(order_id, correlation_id)

        if order is None:
            log.info("resend_skipped", order_id=order_id, reason="not_found")
            return ResendResult(message=GENERIC_RESEND_MESSAGE)
        if order.revoked:
            log.info("resend_skipped", order_id=order_id, reason="revoked")
            return ResendResult(message=GENERIC_RESEND_MESSAGE)
        if clean_email(order.email) != email:
            log.info("resend_skipped", order_id=order_id, reason="email_mismatch")
            return ResendResult(message=GENERIC_RESEND_MESSAGE)

        queued = await self.notifier.dispatch(order.email, order.serial, order.order_id, background)
        log.info("resend_dispatched", order_id=order_id, email_queued=queued)
        return ResendResult(message=GENERIC_RESEND_MESSAGE, email_queued=queued)
