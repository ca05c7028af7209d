"""Settlement Domain Enums"""

from settlement_engine.service.settlement.domain.enum.payment_status import PaymentStatus
from settlement_engine.service.settlement.domain.enum.webhook_outcome import WebhookOutcome

__all__ = ['PaymentStatus', 'WebhookOutcome']
