from datetime import datetime
from typing import Dict, List, Tuple
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reconciliation.app.interface.i_reconciliation_result_repo import (
    IReconciliationResultRepo,
)
from settlement_engine.service.reconciliation.domain.entity.reconciliation_report import (
    ReconciliationIssue,
    ReconciliationReport,
)
from settlement_engine.service.reconciliation.driven_adapter.model.reconciliation_result_model import (
    ReconciliationResultModel,
)


class ReconciliationResultRepoImpl(IReconciliationResultRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(db_result: ReconciliationResultModel) -> ReconciliationReport:
        return ReconciliationReport(
            id=db_result.id,
            event_id=db_result.event_id,
            generated_at=db_result.generated_at,
            issues=[ReconciliationIssue.from_dict(issue) for issue in db_result.issues or []],
            sold_count=db_result.sold_count,
            tickets_issued_count=db_result.tickets_issued_count,
            consumed_reservations_count=db_result.consumed_reservations_count,
            payments_succeeded_count=db_result.payments_succeeded_count,
            expected_revenue_cents=db_result.expected_revenue_cents,
            actual_revenue_cents=db_result.actual_revenue_cents,
        )

    @Logger.io
    async def create(self, *, report: ReconciliationReport) -> ReconciliationReport:
        self.session.add(
            ReconciliationResultModel(
                id=report.id,
                event_id=report.event_id,
                generated_at=report.generated_at,
                has_discrepancies=report.has_discrepancies,
                issues=[issue.to_dict() for issue in report.issues],
                sold_count=report.sold_count,
                tickets_issued_count=report.tickets_issued_count,
                consumed_reservations_count=report.consumed_reservations_count,
                payments_succeeded_count=report.payments_succeeded_count,
                expected_revenue_cents=report.expected_revenue_cents,
                actual_revenue_cents=report.actual_revenue_cents,
                revenue_discrepancy_cents=report.revenue_discrepancy_cents,
            )
        )
        await self.session.flush()
        return report

    @Logger.io
    async def latest_runs(self) -> Dict[UUID, Tuple[datetime, bool]]:
        latest = (
            select(
                ReconciliationResultModel.event_id,
                func.max(ReconciliationResultModel.generated_at).label('latest_at'),
            )
            .group_by(ReconciliationResultModel.event_id)
            .subquery()
        )
        result = await self.session.execute(
            select(
                ReconciliationResultModel.event_id,
                ReconciliationResultModel.generated_at,
                ReconciliationResultModel.has_discrepancies,
            ).join(
                latest,
                and_(
                    ReconciliationResultModel.event_id == latest.c.event_id,
                    ReconciliationResultModel.generated_at == latest.c.latest_at,
                ),
            )
        )
        return {
            event_id: (generated_at, has_discrepancies)
            for event_id, generated_at, has_discrepancies in result.all()
        }

    @Logger.io
    async def list_by_event(self, *, event_id: UUID, limit: int = 20) -> List[ReconciliationReport]:
        result = await self.session.execute(
            select(ReconciliationResultModel)
            .where(ReconciliationResultModel.event_id == event_id)
            .order_by(ReconciliationResultModel.generated_at.desc())
            .limit(limit)
        )
        return [self._to_entity(db_result) for db_result in result.scalars().all()]
