from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID

from pydantic import BaseModel, Field


class ReconciliationIssueResponse(BaseModel):
    type: str
    severity: str
    message: str
    details: Dict[str, Any] = {}


class ReconciliationReportResponse(BaseModel):
    id: UUID
    event_id: UUID
    generated_at: datetime
    has_discrepancies: bool
    issues: List[ReconciliationIssueResponse]
    revenue_discrepancy_cents: int
    expected_revenue_cents: int
    actual_revenue_cents: int
    sold_count: int
    tickets_issued_count: int
    consumed_reservations_count: int
    payments_succeeded_count: int


class ReconcileDueRequest(BaseModel):
    hours_ago: int = Field(default=24, gt=0)

    class Config:
        json_schema_extra = {'example': {'hours_ago': 24}}


class EventDiscrepancyResponse(BaseModel):
    event_id: UUID
    issues: List[ReconciliationIssueResponse]
    revenue_discrepancy_cents: int


class ReconcileDueResponse(BaseModel):
    reconciled: int
    failed: int
    errors: List[str]
    discrepancies: List[EventDiscrepancyResponse]
