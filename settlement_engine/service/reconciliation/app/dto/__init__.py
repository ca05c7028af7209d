"""Reconciliation Application DTOs"""

from settlement_engine.service.reconciliation.app.dto.reconciliation_dto import (
    EventDiscrepancy,
    ReconcileRunSummary,
)

__all__ = ['EventDiscrepancy', 'ReconcileRunSummary']
