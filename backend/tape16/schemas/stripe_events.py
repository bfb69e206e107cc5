# tape16/schemas/stripe_events.py
# ============================================================================
# TAPE 16 SERIAL SERVICE - STRIPE EVENT SCHEMAS
# ============================================================================
# Only the event shapes the service consumes are typed. Everything else in
# the payload is ignored, and unknown event types never reach these models.
# ============================================================================

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


def _expandable_id(value: Any) -> Optional[str]:
    """Stripe sends either an id string or the expanded object."""
    if isinstance(value, dict):
        value = value.get("id")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# ============================================================================
# SECTION 1: EVENT OBJECTS
# ============================================================================

class CustomerDetails(BaseModel):
    email: Optional[str] = None


class CollectedInformation(BaseModel):
    email: Optional[str] = None


class CheckoutSession(BaseModel):
    """data.object of checkout.session.* events"""
    id: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    payment_intent: Optional[str] = None
    customer_email: Optional[str] = None
    customer_details: Optional[CustomerDetails] = None
    collected_information: Optional[CollectedInformation] = None

    @field_validator("payment_intent", mode="before")
    @classmethod
    def normalize_payment_intent(cls, value: Any) -> Optional[str]:
        return _expandable_id(value)

    @property
    def buyer_email(self) -> str:
        return (
            (self.customer_details.email if self.customer_details else None)
            or self.customer_email
            or (self.collected_information.email if self.collected_information else None)
            or ""
        )

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid" or self.status == "complete"


class Charge(BaseModel):
    """data.object of charge.refunded"""
    id: Optional[str] = None
    payment_intent: Optional[str] = None
    refunded: Optional[bool] = False
    amount_refunded: Optional[int] = 0

    @field_validator("payment_intent", mode="before")
    @classmethod
    def normalize_payment_intent(cls, value: Any) -> Optional[str]:
        return _expandable_id(value)

    @property
    def has_refund(self) -> bool:
        return bool(self.refunded) or (self.amount_refunded or 0) > 0


class Refund(BaseModel):
    """data.object of refund.created / refund.updated"""
    id: Optional[str] = None
    status: Optional[str] = None
    payment_intent: Optional[str] = None
    charge: Optional[str] = None

    @field_validator("payment_intent", "charge", mode="before")
    @classmethod
    def normalize_refs(cls, value: Any) -> Optional[str]:
        return _expandable_id(value)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


# ============================================================================
# SECTION 2: TAGGED EVENT UNION
# ============================================================================

class CheckoutSessionData(BaseModel):
    object: CheckoutSession = Field(default_factory=CheckoutSession)


class ChargeData(BaseModel):
    object: Charge = Field(default_factory=Charge)


class RefundData(BaseModel):
    object: Refund = Field(default_factory=Refund)


class CheckoutCompletedEvent(BaseModel):
    id: Optional[str] = None
    type: Literal["checkout.session.completed", "checkout.session.async_payment_succeeded"]
    data: CheckoutSessionData = Field(default_factory=CheckoutSessionData)


class ChargeRefundedEvent(BaseModel):
    id: Optional[str] = None
    type: Literal["charge.refunded"]
    data: ChargeData = Field(default_factory=ChargeData)


class RefundUpdatedEvent(BaseModel):
    id: Optional[str] = None
    type: Literal["refund.created", "refund.updated"]
    data: RefundData = Field(default_factory=RefundData)


StripeEvent = Union[CheckoutCompletedEvent, ChargeRefundedEvent, RefundUpdatedEvent]

ISSUANCE_EVENTS = frozenset({
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
})

REVOCATION_EVENTS = frozenset({
    "charge.refunded",
    "refund.created",
    "refund.updated",
})

_EVENT_MODELS: dict[str, type[BaseModel]] = {
    **{name: CheckoutCompletedEvent for name in ISSUANCE_EVENTS},
    "charge.refunded": ChargeRefundedEvent,
    "refund.created": RefundUpdatedEvent,
    "refund.updated": RefundUpdatedEvent,
}


def parse_event(payload: dict) -> Optional[StripeEvent]:
    """
    Parse a verified event payload into its typed shape.

    Returns None for event types the service does not consume.
    Raises pydantic.ValidationError when a consumed event is malformed.
    """
    event_type = payload.get("type")
    model = _EVENT_MODELS.get(event_type) if isinstance(event_type, str) else None
    if model is None:
        return None
    return model.model_validate(payload)
