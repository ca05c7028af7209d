from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from settlement_engine.platform.config.core_setting import Settings
from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.exception.exceptions import DomainError
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.platform.metrics.settlement_metrics import metrics
from settlement_engine.service.reconciliation.app.command.reconcile_event_use_case import (
    ReconcileEventUseCase,
)
from settlement_engine.service.reconciliation.app.dto.reconciliation_dto import (
    EventDiscrepancy,
    ReconcileRunSummary,
)


class ReconcileDueUseCase:
    """
    ReconcileDue: audit every event that needs it.

    Candidates:
    - events with consumptions or payments in the last ``hours_ago`` hours
      that have not been reconciled since that activity
    - events whose most recent report had discrepancies

    Each event runs in its own transaction; one failure never aborts the run.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        reconcile_event_use_case: ReconcileEventUseCase,
    ) -> None:
        self.uow_factory = uow_factory
        self.reconcile_event_use_case = reconcile_event_use_case

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
            reconcile_event_use_case=ReconcileEventUseCase(
                uow_factory=uow_factory,
                revenue_tolerance_cents=config.RECONCILIATION_REVENUE_TOLERANCE_CENTS,
            ),
        )

    @Logger.io
    async def find_candidates(self, *, since: datetime) -> List[UUID]:
        async with self.uow_factory() as uow:
            activity = await uow.reconciliation_query_repo.list_sales_activity_since(since=since)
            latest_runs = await uow.reconciliation_result_repo.latest_runs()

        candidates = []
        for event_id, last_activity in activity.items():
            last_run = latest_runs.get(event_id)
            if last_run is None or last_run[0] < last_activity or last_run[1]:
                candidates.append(event_id)
        for event_id, (_, has_discrepancies) in latest_runs.items():
            if has_discrepancies and event_id not in activity:
                candidates.append(event_id)
        return candidates

    @Logger.io
    async def execute(
        self, *, hours_ago: int, now: Optional[datetime] = None
    ) -> ReconcileRunSummary:
        if hours_ago <= 0:
            raise DomainError('hours_ago must be positive')

        now = now or datetime.now(timezone.utc)
        candidates = await self.find_candidates(since=now - timedelta(hours=hours_ago))
        summary = ReconcileRunSummary()

        for event_id in candidates:
            try:
                report = await self.reconcile_event_use_case.execute(event_id=event_id)
            except Exception as e:
                summary.failed += 1
                summary.errors.append(f'Event {event_id}: {e}')
                Logger.base.error(f'❌ [RECONCILE] Event {event_id} failed: {e}')
                continue

            summary.reconciled += 1
            if report.has_discrepancies:
                summary.discrepancies.append(
                    EventDiscrepancy(
                        event_id=event_id,
                        issues=[issue.to_dict() for issue in report.issues],
                        revenue_discrepancy_cents=report.revenue_discrepancy_cents,
                    )
                )

        metrics.events_with_discrepancies.set(len(summary.discrepancies))
        Logger.base.info(
            f'🧾 [RECONCILE] Run over {len(candidates)} events: reconciled={summary.reconciled} '
            f'failed={summary.failed} with_discrepancies={len(summary.discrepancies)}'
        )
        return summary
