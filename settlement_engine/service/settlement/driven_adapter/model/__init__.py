"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from settlement_engine.service.settlement.driven_adapter.model.payment_model import PaymentModel
from settlement_engine.service.settlement.driven_adapter.model.processed_external_event_model import (
    ProcessedExternalEventModel,
)

__all__ = ['PaymentModel', 'ProcessedExternalEventModel']
