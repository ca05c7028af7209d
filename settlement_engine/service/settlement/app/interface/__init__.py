"""Application layer interfaces (Ports)"""

from settlement_engine.service.settlement.app.interface.i_checkout_session_provider import (
    ICheckoutSessionProvider,
)
from settlement_engine.service.settlement.app.interface.i_payment_repo import IPaymentRepo
from settlement_engine.service.settlement.app.interface.i_processed_event_repo import (
    IProcessedEventRepo,
)
from settlement_engine.service.settlement.app.interface.i_webhook_verifier import IWebhookVerifier

__all__ = ['ICheckoutSessionProvider', 'IPaymentRepo', 'IProcessedEventRepo', 'IWebhookVerifier']
