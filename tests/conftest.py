"""Shared fixtures: in-memory ledger, mocked Stripe and SendGrid clients."""

import hashlib
import hmac
import json
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from tape16.pipeline.issuance import IssuanceEngine
from tape16.pipeline.revocation import RevocationEngine
from tape16.services.notifications import NotificationDispatcher
from tape16.services.stripe_client import StripeProcessor
from tape16.storage import InMemoryKeyValueStore, OrderLedger

WEBHOOK_SECRET = "whsec_test"
FROM_EMAIL = "serials@tape16.test"


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def ledger(store):
    return OrderLedger(store)


@pytest.fixture
def stripe_mock():
    return MagicMock()


@pytest.fixture
def processor(stripe_mock):
    return StripeProcessor(secret_key="sk_test_123", price_id="price_123", stripe_client=stripe_mock)


@pytest.fixture
def sendgrid_client():
    client = MagicMock()
    client.send.return_value = MagicMock(status_code=202, headers={"X-Message-Id": "msg_1"}, body=b"")
    return client


@pytest.fixture
def notifier(sendgrid_client):
    return NotificationDispatcher(from_email=FROM_EMAIL, client=sendgrid_client)


@pytest.fixture
def issuance(ledger, processor, notifier):
    return IssuanceEngine(ledger=ledger, processor=processor, notifier=notifier)


@pytest.fixture
def revocation(ledger, processor):
    return RevocationEngine(ledger=ledger, processor=processor)


@pytest.fixture
def sign():
    """sign(body, timestamp=None, secret=WEBHOOK_SECRET) -> Stripe-Signature header"""

    def _sign(body, timestamp=None, secret=WEBHOOK_SECRET):
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        ts = str(int(time.time()) if timestamp is None else timestamp)
        digest = hmac.new(secret.encode(), ts.encode() + b"." + body, hashlib.sha256).hexdigest()
        return f"t={ts},v1={digest}"

    return _sign


def checkout_event(order_id="cs_test_1", email="Buyer@Example.com", payment_intent="pi_test_1",
                   event_type="checkout.session.completed"):
    return {
        "id": "evt_checkout",
        "type": event_type,
        "data": {
            "object": {
                "id": order_id,
                "object": "checkout.session",
                "payment_status": "paid",
                "status": "complete",
                "payment_intent": payment_intent,
                "customer_details": {"email": email, "name": "Buyer"},
                "amount_total": 2900,
            }
        },
    }


def refund_event(status="succeeded", payment_intent="pi_test_1", charge="ch_test_1",
                 event_type="refund.updated"):
    return {
        "id": "evt_refund",
        "type": event_type,
        "data": {
            "object": {
                "id": "re_test_1",
                "object": "refund",
                "status": status,
                "payment_intent": payment_intent,
                "charge": charge,
                "amount": 2900,
            }
        },
    }


def charge_refunded_event(payment_intent="pi_test_1", refunded=True, amount_refunded=2900):
    return {
        "id": "evt_charge",
        "type": "charge.refunded",
        "data": {
            "object": {
                "id": "ch_test_1",
                "object": "charge",
                "payment_intent": payment_intent,
                "refunded": refunded,
                "amount_refunded": amount_refunded,
            }
        },
    }


@pytest.fixture
def events():
    """Event payload builders"""
    return SimpleNamespace(
        checkout=checkout_event,
        refund=refund_event,
        charge_refunded=charge_refunded_event,
    )
