# tape16/schemas/__init__.py
# ============================================================================
# TAPE 16 SERIAL SERVICE - SCHEMAS MODULE
# ============================================================================
# Ledger records, engine results, and consumed Stripe event shapes
# ============================================================================

from tape16.schemas.orders import (
    OrderRecord,
    IssueResult,
    RevokeResult,
    ResendResult,
)

from tape16.schemas.stripe_events import (
    CheckoutSession,
    Charge,
    Refund,
    CheckoutCompletedEvent,
    ChargeRefundedEvent,
    RefundUpdatedEvent,
    StripeEvent,
    ISSUANCE_EVENTS,
    REVOCATION_EVENTS,
    parse_event,
)

__all__ = [
    # Ledger
    "OrderRecord",
    "IssueResult",
    "RevokeResult",
    "ResendResult",
    # Stripe events
    "CheckoutSession",
    "Charge",
    "Refund",
    "CheckoutCompletedEvent",
    "ChargeRefundedEvent",
    "RefundUpdatedEvent",
    "StripeEvent",
    "ISSUANCE_EVENTS",
    "REVOCATION_EVENTS",
    "parse_event",
]
