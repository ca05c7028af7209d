from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Tuple
from uuid import UUID

from settlement_engine.service.reconciliation.domain.entity.reconciliation_report import (
    ReconciliationReport,
)


class IReconciliationResultRepo(ABC):
    @abstractmethod
    async def create(self, *, report: ReconciliationReport) -> ReconciliationReport:
        pass

    @abstractmethod
    async def latest_runs(self) -> Dict[UUID, Tuple[datetime, bool]]:
        """event_id → (generated_at, has_discrepancies) of its most recent run."""
        pass

    @abstractmethod
    async def list_by_event(self, *, event_id: UUID, limit: int = 20) -> List[ReconciliationReport]:
        pass
