"""Wires the ledger, Stripe, SendGrid and the engines together once per app."""

from typing import Optional

from tape16.config import ServiceConfig
from tape16.pipeline.issuance import IssuanceEngine
from tape16.pipeline.revocation import RevocationEngine
from tape16.pipeline.webhooks import WebhookProcessor
from tape16.services.notifications import NotificationDispatcher
from tape16.services.stripe_client import StripeProcessor
from tape16.storage import IKeyValueStore, OrderLedger, build_store


class ServiceContainer:
    """Everything a request handler needs. Built at startup, never mutated."""

    def __init__(
        self,
        config: ServiceConfig,
        store: Optional[IKeyValueStore] = None,
        processor: Optional[StripeProcessor] = None,
        notifier: Optional[NotificationDispatcher] = None,
    ):
        self.config = config
        self.store = store or build_store(config.redis_url)
        self.ledger = OrderLedger(self.store)
        self.processor = processor or StripeProcessor(
            secret_key=config.stripe_secret_key,
            price_id=config.stripe_price_id,
        )
        self.notifier = notifier or NotificationDispatcher(
            api_key=config.sendgrid_api_key,
            from_email=config.sendgrid_from_email,
        )
        self.issuance = IssuanceEngine(
            ledger=self.ledger,
            processor=self.processor,
            notifier=self.notifier,
            serial_prefix=config.serial_prefix,
        )
        self.revocation = RevocationEngine(ledger=self.ledger, processor=self.processor)
        self.webhooks = WebhookProcessor(
            webhook_secret=config.stripe_webhook_secret,
            issuance=self.issuance,
            revocation=self.revocation,
            notifier=self.notifier,
            tolerance=config.webhook_tolerance,
        )
