"""Application layer interfaces (Ports)"""

from settlement_engine.service.reconciliation.app.interface.i_reconciliation_query_repo import (
    IReconciliationQueryRepo,
)
from settlement_engine.service.reconciliation.app.interface.i_reconciliation_result_repo import (
    IReconciliationResultRepo,
)

__all__ = ['IReconciliationQueryRepo', 'IReconciliationResultRepo']
