"""
Stripe hosted checkout adapter

The stripe SDK is synchronous, so every call runs in a worker thread to keep
the event loop free. The API key is passed per request; the stripe module
keeps no global configuration.
"""

from datetime import datetime, timezone
from functools import partial
from typing import Any, Dict

import anyio
import stripe

from settlement_engine.platform.exception.exceptions import PaymentProviderError
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.settlement.app.dto.external_event_dto import (
    ProviderCheckoutSession,
)
from settlement_engine.service.settlement.app.interface.i_checkout_session_provider import (
    ICheckoutSessionProvider,
)


class StripeCheckoutSessionProvider(ICheckoutSessionProvider):
    def __init__(self, *, api_key: str, currency: str = 'usd') -> None:
        self.api_key = api_key
        self.currency = currency

    @staticmethod
    def _to_dto(session: Any) -> ProviderCheckoutSession:
        return ProviderCheckoutSession(
            id=session.id,
            url=session.url,
            status=session.status,
            expires_at=datetime.fromtimestamp(session.expires_at, tz=timezone.utc),
        )

    async def _call(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await anyio.to_thread.run_sync(
                partial(func, *args, api_key=self.api_key, **kwargs)
            )
        except stripe.StripeError as e:
            raise PaymentProviderError(f'Payment provider error: {e.user_message or e}') from e

    @Logger.io
    async def create_session(
        self,
        *,
        client_reference_id: str,
        line_item_name: str,
        unit_amount_cents: int,
        quantity: int,
        success_url: str,
        cancel_url: str,
        expires_at: datetime,
        metadata: Dict[str, str],
        idempotency_key: str,
    ) -> ProviderCheckoutSession:
        session = await self._call(
            stripe.checkout.Session.create,
            mode='payment',
            client_reference_id=client_reference_id,
            line_items=[
                {
                    'price_data': {
                        'currency': self.currency,
                        'unit_amount': unit_amount_cents,
                        'product_data': {'name': line_item_name},
                    },
                    'quantity': quantity,
                }
            ],
            success_url=success_url,
            cancel_url=cancel_url,
            expires_at=int(expires_at.timestamp()),
            metadata=metadata,
            payment_intent_data={'metadata': metadata},
            idempotency_key=idempotency_key,
        )
        Logger.base.info(f'💳 [CHECKOUT] Stripe session {session.id} created')
        return self._to_dto(session)

    @Logger.io
    async def retrieve_session(self, *, session_id: str) -> ProviderCheckoutSession:
        session = await self._call(stripe.checkout.Session.retrieve, session_id)
        return self._to_dto(session)

    @Logger.io
    async def expire_session(self, *, session_id: str) -> None:
        await self._call(stripe.checkout.Session.expire, session_id)
