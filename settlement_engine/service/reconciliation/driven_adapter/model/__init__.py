"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from settlement_engine.service.reconciliation.driven_adapter.model.reconciliation_result_model import (
    ReconciliationResultModel,
)

__all__ = ['ReconciliationResultModel']
