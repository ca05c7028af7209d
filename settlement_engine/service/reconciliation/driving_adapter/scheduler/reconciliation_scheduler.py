import anyio
from anyio.abc import TaskGroup

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reconciliation.app.command.reconcile_due_use_case import (
    ReconcileDueUseCase,
)
from settlement_engine.service.reconciliation.app.dto.reconciliation_dto import (
    ReconcileRunSummary,
)


class ReconciliationScheduler:
    """Run ReconcileDue on a fixed interval inside the service process"""

    def __init__(
        self,
        *,
        use_case: ReconcileDueUseCase,
        interval_seconds: float = 3600.0,
        hours_ago: int = 24,
    ) -> None:
        self.use_case = use_case
        self.interval_seconds = interval_seconds
        self.hours_ago = hours_ago

    async def start(self, *, task_group: TaskGroup) -> None:
        task_group.start_soon(self._poll_loop)
        Logger.base.info(
            f'🧾 [RECONCILE] Scheduler started (every {self.interval_seconds}s, '
            f'window {self.hours_ago}h)'
        )

    async def run_once(self) -> ReconcileRunSummary | None:
        try:
            return await self.use_case.execute(hours_ago=self.hours_ago)
        except Exception as e:
            Logger.base.error(f'❌ [RECONCILE] Scheduled run failed: {e}')
            return None

    async def _poll_loop(self) -> None:
        while True:
            await anyio.sleep(self.interval_seconds)
            await self.run_once()
