"""Stripe-Signature verification."""

import hashlib
import hmac
import time

import pytest

from tape16.services.webhook_verifier import verify_stripe_signature

SECRET = "whsec_test"
BODY = b'{"id":"evt_1"}'
TS = "1700000000"
EXPECTED = hmac.new(SECRET.encode(), b'1700000000.{"id":"evt_1"}', hashlib.sha256).hexdigest()


def _flip(text: str, index: int) -> str:
    """Change one character, staying inside the same alphabet."""
    replacement = "0" if text[index] != "0" else "1"
    return text[:index] + replacement + text[index + 1:]


def test_known_vector_is_accepted():
    assert verify_stripe_signature(BODY, f"t={TS},v1={EXPECTED}", SECRET)


def test_known_vector_accepts_str_body():
    assert verify_stripe_signature(BODY.decode(), f"t={TS},v1={EXPECTED}", SECRET)


def test_digest_over_body_alone_is_rejected():
    body_only = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
    assert not verify_stripe_signature(BODY, f"t={TS},v1={body_only}", SECRET)


@pytest.mark.parametrize("index", [0, 5, len(BODY) - 1])
def test_tampered_body_is_rejected(index):
    tampered = bytearray(BODY)
    tampered[index] ^= 0x01
    assert not verify_stripe_signature(bytes(tampered), f"t={TS},v1={EXPECTED}", SECRET)


@pytest.mark.parametrize("index", [0, 9])
def test_tampered_timestamp_is_rejected(index):
    assert not verify_stripe_signature(BODY, f"t={_flip(TS, index)},v1={EXPECTED}", SECRET)


@pytest.mark.parametrize("index", [0, 31, 63])
def test_tampered_signature_is_rejected(index):
    assert not verify_stripe_signature(BODY, f"t={TS},v1={_flip(EXPECTED, index)}", SECRET)


def test_wrong_secret_is_rejected():
    assert not verify_stripe_signature(BODY, f"t={TS},v1={EXPECTED}", "whsec_other")


def test_any_v1_may_match_during_secret_rotation():
    stale = "a" * 64
    header = f"t={TS},v1={stale},v1={EXPECTED},v0=deadbeef"
    assert verify_stripe_signature(BODY, header, SECRET)


@pytest.mark.parametrize("header", [
    "",
    "garbage",
    f"v1={EXPECTED}",
    f"t={TS}",
    f"t={TS},v0={EXPECTED}",
    f"t=,v1={EXPECTED}",
    f"t={TS},v1=",
])
def test_malformed_headers_are_rejected(header):
    assert not verify_stripe_signature(BODY, header, SECRET)


def test_missing_secret_or_body_is_rejected():
    assert not verify_stripe_signature(BODY, f"t={TS},v1={EXPECTED}", "")
    assert not verify_stripe_signature(b"", f"t={TS},v1={EXPECTED}", SECRET)


def test_truncated_signature_is_rejected():
    assert not verify_stripe_signature(BODY, f"t={TS},v1={EXPECTED[:-2]}", SECRET)


def test_current_timestamp_within_tolerance(sign):
    header = sign(BODY, secret=SECRET)
    assert verify_stripe_signature(BODY, header, SECRET, tolerance=300)


def test_stale_timestamp_outside_tolerance(monkeypatch):
    header = f"t={TS},v1={EXPECTED}"
    assert not verify_stripe_signature(BODY, header, SECRET, tolerance=300)

    monkeypatch.setattr(time, "time", lambda: 1700000100.0)
    assert verify_stripe_signature(BODY, header, SECRET, tolerance=300)


def test_non_numeric_timestamp_is_rejected():
    digest = hmac.new(SECRET.encode(), b"soon." + BODY, hashlib.sha256).hexdigest()
    assert not verify_stripe_signature(BODY, f"t=soon,v1={digest}", SECRET)


def test_non_utf8_body_is_rejected():
    body = b"\xff\xfe"
    digest = hmac.new(SECRET.encode(), TS.encode() + b"." + body, hashlib.sha256).hexdigest()
    assert not verify_stripe_signature(body, f"t={TS},v1={digest}", SECRET)
