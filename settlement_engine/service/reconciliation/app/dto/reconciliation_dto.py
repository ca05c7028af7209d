from typing import Any, Dict, List
from uuid import UUID

import attrs


@attrs.define(frozen=True)
class EventDiscrepancy:
    event_id: UUID
    issues: List[Dict[str, Any]]
    revenue_discrepancy_cents: int


@attrs.define
class ReconcileRunSummary:
    reconciled: int = 0
    failed: int = 0
    errors: List[str] = attrs.field(factory=list)
    discrepancies: List[EventDiscrepancy] = attrs.field(factory=list)
