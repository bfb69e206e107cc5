"""
Stripe Processor Client
=======================
The three REST calls the service makes against Stripe:
- checkout session creation (pass-through for the storefront)
- checkout session lookup (recovering a missed webhook)
- charge lookup (resolving a refund that only names its charge)

Lookups return None on any Stripe failure; callers treat that as "unknown".

pip install stripe structlog
"""

from typing import Any, Optional

import stripe
import structlog

from tape16.errors import Unconfigured, UpstreamError


def _to_dict(obj: Any) -> dict:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


class StripeProcessor:
    """Thin wrapper over the stripe library, keyed per call by the secret key"""

    def __init__(self, secret_key: str = "", price_id: str = "", stripe_client=stripe):
        self.secret_key = secret_key
        self.price_id = price_id
        self._stripe = stripe_client
        self._logger = structlog.get_logger().bind(component="stripe_processor")

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    async def retrieve_session(self, session_id: str) -> Optional[dict]:
        if not self.configured:
            return None
        try:
            session = self._stripe.checkout.Session.retrieve(session_id, api_key=self.secret_key)
        except stripe.StripeError as e:
            self._logger.warning("session_lookup_failed", session_id=session_id, error=str(e))
            return None
        return _to_dict(session)

    async def retrieve_charge(self, charge_id: str) -> Optional[dict]:
        if not self.configured:
            return None
        try:
            charge = self._stripe.Charge.retrieve(charge_id, api_key=self.secret_key)
        except stripe.StripeError as e:
            self._logger.warning("charge_lookup_failed", charge_id=charge_id, error=str(e))
            return None
        return _to_dict(charge)

    async def create_checkout_session(self, success_url: str, cancel_url: str) -> dict:
        if not self.secret_key or not self.price_id:
            raise Unconfigured("Missing STRIPE_SECRET_KEY or STRIPE_PRICE_ID")
        try:
            session = self._stripe.checkout.Session.create(
                api_key=self.secret_key,
                mode="payment",
                line_items=[{"price": self.price_id, "quantity": 1}],
                allow_promotion_codes=False,
                success_url=success_url,
                cancel_url=cancel_url,
                billing_address_collection="auto",
                customer_creation="if_required",
                tax_id_collection={"enabled": False},
            )
        except stripe.StripeError as e:
            self._logger.error("checkout_failed", error=str(e), error_type=type(e).__name__)
            raise UpstreamError(getattr(e, "user_message", None) or "Stripe API error") from e

        self._logger.info("checkout_created", stripe_session_id=session.id)
        return {"url": session.url, "id": session.id}
