from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reconciliation.app.command.reconcile_due_use_case import (
    ReconcileDueUseCase,
)
from settlement_engine.service.reconciliation.app.command.reconcile_event_use_case import (
    ReconcileEventUseCase,
)
from settlement_engine.service.reconciliation.app.query.list_reconciliation_reports_use_case import (
    ListReconciliationReportsUseCase,
)
from settlement_engine.service.reconciliation.domain.entity.reconciliation_report import (
    ReconciliationReport,
)
from settlement_engine.service.reconciliation.driving_adapter.http_controller.schema.reconciliation_schema import (
    EventDiscrepancyResponse,
    ReconcileDueRequest,
    ReconcileDueResponse,
    ReconciliationIssueResponse,
    ReconciliationReportResponse,
)
from settlement_engine.service.shared_kernel.domain.current_user import CurrentUser
from settlement_engine.service.shared_kernel.driving_adapter.auth.role_auth import (
    require_system,
)


router = APIRouter()


def _report_response(report: ReconciliationReport) -> ReconciliationReportResponse:
    return ReconciliationReportResponse(
        id=report.id,
        event_id=report.event_id,
        generated_at=report.generated_at,
        has_discrepancies=report.has_discrepancies,
        issues=[ReconciliationIssueResponse(**issue.to_dict()) for issue in report.issues],
        revenue_discrepancy_cents=report.revenue_discrepancy_cents,
        expected_revenue_cents=report.expected_revenue_cents,
        actual_revenue_cents=report.actual_revenue_cents,
        sold_count=report.sold_count,
        tickets_issued_count=report.tickets_issued_count,
        consumed_reservations_count=report.consumed_reservations_count,
        payments_succeeded_count=report.payments_succeeded_count,
    )


@router.post('/event/{event_id}')
@Logger.io
async def reconcile_event(
    event_id: UUID,
    current_user: CurrentUser = Depends(require_system),
    use_case: ReconcileEventUseCase = Depends(ReconcileEventUseCase.depends),
) -> ReconciliationReportResponse:
    report = await use_case.execute(event_id=event_id)
    return _report_response(report)


@router.get('/event/{event_id}')
@Logger.io
async def list_reconciliation_reports(
    event_id: UUID,
    limit: int = Query(default=20, gt=0, le=100),
    current_user: CurrentUser = Depends(require_system),
    use_case: ListReconciliationReportsUseCase = Depends(ListReconciliationReportsUseCase.depends),
) -> List[ReconciliationReportResponse]:
    reports = await use_case.execute(event_id=event_id, limit=limit)
    return [_report_response(report) for report in reports]


@router.post('/due')
@Logger.io
async def reconcile_due(
    request: ReconcileDueRequest,
    current_user: CurrentUser = Depends(require_system),
    use_case: ReconcileDueUseCase = Depends(ReconcileDueUseCase.depends),
) -> ReconcileDueResponse:
    summary = await use_case.execute(hours_ago=request.hours_ago)
    return ReconcileDueResponse(
        reconciled=summary.reconciled,
        failed=summary.failed,
        errors=summary.errors,
        discrepancies=[
            EventDiscrepancyResponse(
                event_id=discrepancy.event_id,
                issues=[ReconciliationIssueResponse(**issue) for issue in discrepancy.issues],
                revenue_discrepancy_cents=discrepancy.revenue_discrepancy_cents,
            )
            for discrepancy in summary.discrepancies
        ],
    )
