from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from settlement_engine.service.reconciliation.domain.entity.event_ledger_snapshot import (
    EventLedgerSnapshot,
)


class IReconciliationQueryRepo(ABC):
    """Read-only view across the reservation, ticket and payment ledgers"""

    @abstractmethod
    async def load_event_snapshot(self, *, event_id: UUID) -> Optional[EventLedgerSnapshot]:
        """None when the event has no inventory."""
        pass

    @abstractmethod
    async def list_sales_activity_since(self, *, since: datetime) -> Dict[UUID, datetime]:
        """event_id → latest consumption or payment at or after ``since``."""
        pass
