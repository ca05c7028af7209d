"""Settlement Application DTOs"""

from settlement_engine.service.settlement.app.dto.external_event_dto import (
    CheckoutResult,
    ExternalEvent,
    ProviderCheckoutSession,
    WebhookResult,
)

__all__ = ['CheckoutResult', 'ExternalEvent', 'ProviderCheckoutSession', 'WebhookResult']
