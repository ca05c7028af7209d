import anyio
from anyio.abc import TaskGroup

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.platform.metrics.settlement_metrics import metrics
from settlement_engine.service.reservation.app.command.expire_reservations_use_case import (
    ExpireReservationsUseCase,
)


class ExpirationSweeper:
    """Periodically reclaim inventory held by lapsed reservations"""

    def __init__(
        self,
        *,
        use_case: ExpireReservationsUseCase,
        interval_seconds: float = 30.0,
    ) -> None:
        self.use_case = use_case
        self.interval_seconds = interval_seconds

    async def start(self, *, task_group: TaskGroup) -> None:
        task_group.start_soon(self._poll_loop)
        Logger.base.info(f'🧹 [SWEEPER] Started (every {self.interval_seconds}s)')

    async def run_once(self) -> int:
        try:
            released = await self.use_case.execute()
        except Exception as e:
            # A failed sweep leaves rows pending; the next tick retries them
            metrics.sweeper_runs.labels(result='error').inc()
            Logger.base.error(f'❌ [SWEEPER] Sweep failed: {e}')
            return 0

        metrics.sweeper_runs.labels(result='success').inc()
        return released

    async def _poll_loop(self) -> None:
        while True:
            await self.run_once()
            await anyio.sleep(self.interval_seconds)
