"""
Stripe Webhook Signature Verification
=====================================
Stripe-Signature: t=<unix ts>,v1=<hex>,v1=<hex>...

Checked with the Stripe SDK against the raw request bytes, before anything
parses them. Multiple v1 values are sent while a signing secret is being
rolled; any match is accepted.

pip install stripe structlog
"""

from typing import Optional, Union

import stripe
import structlog

logger = structlog.get_logger().bind(component="webhook_verifier")


def verify_stripe_signature(
    raw_body: Union[bytes, str],
    header: str,
    secret: str,
    tolerance: Optional[int] = None,
) -> bool:
    """
    True when the header carries a v1 signature of raw_body under secret.

    With tolerance (seconds) set, the signed timestamp must also be no older
    than that window.
    """
    if not header or not secret or not raw_body:
        return False

    try:
        payload = raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body
        stripe.WebhookSignature.verify_header(payload, header, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        logger.debug("webhook_signature_rejected", reason=str(e))
        return False
    except ValueError:
        return False
    return True
