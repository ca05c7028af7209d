from typing import Any

import orjson
import stripe

from settlement_engine.platform.exception.exceptions import (
    InvalidSignatureError,
    MalformedExternalEventError,
)
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.settlement.app.dto.external_event_dto import ExternalEvent
from settlement_engine.service.settlement.app.interface.i_webhook_verifier import IWebhookVerifier


class StripeWebhookVerifier(IWebhookVerifier):
    """Verify the Stripe-Signature header before the body is trusted"""

    def __init__(self, *, webhook_secret: str, tolerance_seconds: int = 300) -> None:
        self.webhook_secret = webhook_secret
        self.tolerance_seconds = tolerance_seconds

    def verify(self, *, payload: bytes, signature: str | None) -> ExternalEvent:
        if not signature:
            raise InvalidSignatureError('Missing Stripe-Signature header')

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode('utf-8'),
                signature,
                self.webhook_secret,
                self.tolerance_seconds,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            Logger.base.warning(f'🚫 [WEBHOOK] Signature verification failed: {e}')
            raise InvalidSignatureError() from e

        try:
            envelope: Any = orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            raise MalformedExternalEventError('Webhook body is not valid JSON') from e

        if not isinstance(envelope, dict):
            raise MalformedExternalEventError('Webhook body is not an object')

        event_id = envelope.get('id')
        event_type = envelope.get('type')
        if not isinstance(event_id, str) or not isinstance(event_type, str):
            raise MalformedExternalEventError('Webhook event is missing id or type')

        data = envelope.get('data')
        payload_object = data.get('object') if isinstance(data, dict) else None
        return ExternalEvent(
            id=event_id,
            type=event_type,
            payload=payload_object if isinstance(payload_object, dict) else {},
        )
