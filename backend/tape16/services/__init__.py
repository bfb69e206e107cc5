# tape16/services/__init__.py
# ============================================================================
# TAPE 16 SERIAL SERVICE - SERVICES MODULE
# ============================================================================
# Serial generation, webhook verification, Stripe and SendGrid clients
# ============================================================================

from tape16.services.serials import (
    create_serial,
    serial_pattern,
)

from tape16.services.webhook_verifier import (
    verify_stripe_signature,
)

from tape16.services.stripe_client import StripeProcessor

from tape16.services.notifications import NotificationDispatcher

__all__ = [
    # Serials
    "create_serial",
    "serial_pattern",
    # Webhook verification
    "verify_stripe_signature",
    # External collaborators
    "StripeProcessor",
    "NotificationDispatcher",
]
