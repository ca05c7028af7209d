from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID

import attrs
from uuid_utils.compat import uuid7

from settlement_engine.service.reconciliation.domain.enum.issue_type import (
    IssueSeverity,
    IssueType,
)


@attrs.define(frozen=True)
class ReconciliationIssue:
    type: IssueType
    severity: IssueSeverity
    message: str
    details: Dict[str, Any] = attrs.field(factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'severity': self.severity.value,
            'message': self.message,
            'details': self.details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReconciliationIssue':
        return cls(
            type=IssueType(data['type']),
            severity=IssueSeverity(data['severity']),
            message=data.get('message', ''),
            details=data.get('details') or {},
        )


@attrs.define
class ReconciliationReport:
    """Diagnostic only: a report never changes the ledgers it describes"""

    id: UUID
    event_id: UUID
    generated_at: datetime
    issues: List[ReconciliationIssue]
    sold_count: int
    tickets_issued_count: int
    consumed_reservations_count: int
    payments_succeeded_count: int
    expected_revenue_cents: int
    actual_revenue_cents: int

    @classmethod
    def new(cls, **kwargs: Any) -> 'ReconciliationReport':
        return cls(id=uuid7(), **kwargs)

    @property
    def revenue_discrepancy_cents(self) -> int:
        return self.expected_revenue_cents - self.actual_revenue_cents

    @property
    def has_discrepancies(self) -> bool:
        return bool(self.issues)
