from datetime import datetime, timezone
from typing import Callable, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from settlement_engine.platform.config.core_setting import Settings
from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.exception.exceptions import NotFoundError
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.platform.metrics.settlement_metrics import metrics
from settlement_engine.service.reconciliation.domain.entity.reconciliation_report import (
    ReconciliationReport,
)
from settlement_engine.service.reconciliation.domain.reconciliation_auditor import (
    ReconciliationAuditor,
)


class ReconcileEventUseCase:
    """
    Audit one event's ledgers and persist the report.

    Read-only over the ledgers; discrepancies are reported, never repaired.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        revenue_tolerance_cents: int,
    ) -> None:
        self.uow_factory = uow_factory
        self.auditor = ReconciliationAuditor(revenue_tolerance_cents=revenue_tolerance_cents)
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[[], AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            uow_factory=uow_factory,
            revenue_tolerance_cents=config.RECONCILIATION_REVENUE_TOLERANCE_CENTS,
        )

    @Logger.io
    async def execute(self, *, event_id: UUID) -> ReconciliationReport:
        with self.tracer.start_as_current_span(
            'use_case.reconcile_event',
            attributes={'event.id': str(event_id)},
        ) as span:
            async with self.uow_factory() as uow:
                snapshot = await uow.reconciliation_query_repo.load_event_snapshot(
                    event_id=event_id
                )
                if snapshot is None:
                    raise NotFoundError(f'No inventory for event {event_id}')

                report = self.auditor.audit(snapshot, now=datetime.now(timezone.utc))
                await uow.reconciliation_result_repo.create(report=report)
                await uow.commit()

            span.set_attribute('reconciliation.issue_count', len(report.issues))
            for issue in report.issues:
                metrics.record_discrepancy(
                    issue_type=issue.type.value, severity=issue.severity.value
                )

            if report.has_discrepancies:
                Logger.base.warning(
                    f'🧾 [RECONCILE] Event {event_id}: {len(report.issues)} issues '
                    f'({", ".join(issue.type for issue in report.issues)}), '
                    f'revenue discrepancy {report.revenue_discrepancy_cents} cents'
                )
            else:
                Logger.base.info(f'🧾 [RECONCILE] Event {event_id}: ledgers agree')
            return report
