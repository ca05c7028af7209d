"""Unit tests for StripeWebhookVerifier"""

import time

import orjson
import pytest

from settlement_engine.platform.exception.exceptions import (
    InvalidSignatureError,
    MalformedExternalEventError,
)
from settlement_engine.service.settlement.driven_adapter.payment_provider.stripe_webhook_verifier import (
    StripeWebhookVerifier,
)


SECRET = 'whsec_test_secret'


@pytest.fixture
def verifier() -> StripeWebhookVerifier:
    return StripeWebhookVerifier(webhook_secret=SECRET, tolerance_seconds=300)


def test_valid_signature_yields_event_object(verifier, sign_webhook):
    body = orjson.dumps(
        {
            'id': 'evt_1',
            'type': 'checkout.session.completed',
            'data': {'object': {'id': 'cs_1', 'amount_total': 5000}},
        }
    )

    event = verifier.verify(payload=body, signature=sign_webhook(body, secret=SECRET))

    assert event.id == 'evt_1'
    assert event.type == 'checkout.session.completed'
    assert event.payload == {'id': 'cs_1', 'amount_total': 5000}


def test_missing_signature(verifier):
    with pytest.raises(InvalidSignatureError):
        verifier.verify(payload=b'{}', signature=None)


def test_signature_from_another_secret(verifier, sign_webhook):
    body = orjson.dumps({'id': 'evt_1', 'type': 'x'})

    with pytest.raises(InvalidSignatureError) as exc_info:
        verifier.verify(payload=body, signature=sign_webhook(body, secret='whsec_other'))

    assert exc_info.value.status_code == 400


def test_tampered_body(verifier, sign_webhook):
    body = orjson.dumps({'id': 'evt_1', 'type': 'x'})
    signature = sign_webhook(body, secret=SECRET)

    with pytest.raises(InvalidSignatureError):
        verifier.verify(payload=body.replace(b'evt_1', b'evt_2'), signature=signature)


def test_stale_timestamp(verifier, sign_webhook):
    body = orjson.dumps({'id': 'evt_1', 'type': 'x'})
    signature = sign_webhook(body, secret=SECRET, timestamp=int(time.time()) - 3600)

    with pytest.raises(InvalidSignatureError):
        verifier.verify(payload=body, signature=signature)


def test_signed_body_without_event_id_is_malformed(verifier, sign_webhook):
    body = orjson.dumps({'type': 'checkout.session.completed'})

    with pytest.raises(MalformedExternalEventError):
        verifier.verify(payload=body, signature=sign_webhook(body, secret=SECRET))


def test_signed_body_that_is_not_an_object_is_malformed(verifier, sign_webhook):
    body = orjson.dumps(['evt_1'])

    with pytest.raises(MalformedExternalEventError):
        verifier.verify(payload=body, signature=sign_webhook(body, secret=SECRET))
