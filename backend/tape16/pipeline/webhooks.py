"""
Stripe Webhook Pipeline
=======================
verify (raw bytes) -> parse JSON -> typed event -> routed handler.

Unrecognised event types are acknowledged with {"ignored": true} so Stripe
stops redelivering them.
"""

import json
import uuid
from typing import Any, Callable, Optional

import structlog
from fastapi import BackgroundTasks
from pydantic import ValidationError

from tape16.errors import InvalidInput, Unauthenticated, Unconfigured
from tape16.pipeline.issuance import IssuanceEngine
from tape16.pipeline.revocation import RevocationEngine
from tape16.schemas.stripe_events import StripeEvent, parse_event
from tape16.services.notifications import NotificationDispatcher
from tape16.services.webhook_verifier import verify_stripe_signature

WebhookHandler = Callable[[Any, str, Optional[BackgroundTasks]], Any]


class WebhookRouter:
    """Maps event types to handlers registered with @router.register(...)"""

    def __init__(self):
        self._handlers: dict[str, WebhookHandler] = {}
        self._logger = structlog.get_logger().bind(component="webhook_router")

    def register(self, *event_types: str):
        def decorator(handler: WebhookHandler):
            for event_type in event_types:
                self._handlers[event_type] = handler
                self._logger.debug("handler_registered", event_type=event_type)
            return handler
        return decorator

    async def route(
        self,
        event: StripeEvent,
        correlation_id: str,
        background: Optional[BackgroundTasks] = None,
    ) -> Optional[dict]:
        handler = self._handlers.get(event.type)
        if not handler:
            self._logger.warning("no_handler", event_type=event.type)
            return None
        return await handler(event, correlation_id, background)


class WebhookProcessor:
    """
    Example:
        processor = WebhookProcessor(secret, issuance, revocation, notifier)
        body = await processor.process(raw_body, request.headers.get("stripe-signature"))
    """

    def __init__(
        self,
        webhook_secret: str,
        issuance: IssuanceEngine,
        revocation: RevocationEngine,
        notifier: NotificationDispatcher,
        tolerance: Optional[int] = None,
    ):
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance
        self.issuance = issuance
        self.revocation = revocation
        self.notifier = notifier
        self.router = WebhookRouter()
        self._register_handlers()
        self._base_logger = structlog.get_logger()

    def _get_logger(self, correlation_id: str = None):
        return self._base_logger.bind(
            component="webhooks",
            correlation_id=correlation_id or str(uuid.uuid4()),
        )

    async def process(
        self,
        raw_body: bytes,
        signature: str,
        background: Optional[BackgroundTasks] = None,
    ) -> dict:
        correlation_id = str(uuid.uuid4())
        log = self._get_logger(correlation_id)

        if not self.webhook_secret:
            raise Unconfigured("Missing STRIPE_WEBHOOK_SECRET")

        # Verify BEFORE parsing, against the exact bytes received
        if not verify_stripe_signature(raw_body, signature, self.webhook_secret, self.tolerance):
            log.warning("webhook_signature_invalid", has_header=bool(signature))
            raise Unauthenticated("Invalid signature")

        try:
            payload = json.loads(raw_body)
        except ValueError:
            raise InvalidInput("Invalid JSON payload")
        if not isinstance(payload, dict):
            raise InvalidInput("Invalid JSON payload")

        event_type = payload.get("type") if isinstance(payload.get("type"), str) else None
        log.info("webhook_received", event_type=event_type, stripe_event_id=payload.get("id"))

        try:
            event = parse_event(payload)
        except ValidationError as e:
            log.warning("webhook_payload_invalid", event_type=event_type, error=str(e))
            raise InvalidInput("Invalid event payload")

        result = await self.router.route(event, correlation_id, background) if event else None
        if result is None:
            return {"ok": True, "ignored": True, "eventType": event_type}
        return result

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def _register_handlers(self):

        @self.router.register("checkout.session.completed", "checkout.session.async_payment_succeeded")
        async def handle_checkout_completed(event, correlation_id, background):
            return await self._on_checkout_completed(event, correlation_id, background)

        @self.router.register("charge.refunded", "refund.created", "refund.updated")
        async def handle_refund(event, correlation_id, background):
            return await self._on_refund(event, correlation_id)

    async def _on_checkout_completed(self, event, correlation_id: str, background) -> dict:
        log = self._get_logger(correlation_id)
        session = event.data.object
        result = await self.issuance.issue_or_reuse(
            order_id=session.id,
            email=session.buyer_email,
            source=event.type,
            payment_reference=session.payment_intent,
            correlation_id=correlation_id,
        )
        order = result.order
        log.info("stripe_processed", order_id=order.order_id, issued=result.issued)

        # Redelivered events resend the same serial, never a revoked one
        if order.revoked:
            log.info("email_skipped", order_id=order.order_id, reason="revoked")
            email_queued = False
        else:
            email_queued = await self.notifier.dispatch(order.email, order.serial, order.order_id, background)
        return {
            "ok": True,
            "issued": result.issued,
            "orderId": order.order_id,
            "emailQueued": email_queued,
        }

    async def _on_refund(self, event, correlation_id: str) -> dict:
        result = await self.revocation.handle_refund_event(event, correlation_id)
        if result.ignored:
            return {"ok": True, "ignored": True, "eventType": result.event_type}
        return {"ok": True, "revoked": result.newly_revoked, "orderId": result.order_id}
