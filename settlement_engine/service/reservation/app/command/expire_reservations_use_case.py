from datetime import datetime, timezone
from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from settlement_engine.platform.config.core_setting import Settings
from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.platform.metrics.settlement_metrics import metrics
from settlement_engine.service.reservation.app.reservation_manager import ReservationManager


class ExpireReservationsUseCase:
    """
    ExpireBatch: reclaim inventory from holds past their deadline.

    Flow:
    1. Read a batch of pending ids with expires_at <= now (no locks)
    2. For each id, a short transaction that re-selects the row with
       FOR UPDATE SKIP LOCKED and re-checks status = pending
       - locked by live checkout traffic → skipped, next sweep retries
       - consumed/cancelled since step 1 → untouched
    3. Repeat while full batches keep making progress
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        reservation_manager: ReservationManager,
        batch_size: int,
    ) -> None:
        self.uow_factory = uow_factory
        self.reservation_manager = reservation_manager
        self.batch_size = batch_size

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[[], AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        reservation_manager: ReservationManager = Depends(Provide[Container.reservation_manager]),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            uow_factory=uow_factory,
            reservation_manager=reservation_manager,
            batch_size=config.SWEEPER_BATCH_SIZE,
        )

    @Logger.io
    async def execute(self, *, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        released_total = 0

        while True:
            async with self.uow_factory() as uow:
                candidate_ids = await uow.reservation_repo.list_expired_pending_ids(
                    now=now, limit=self.batch_size
                )

            released_in_batch = 0
            for reservation_id in candidate_ids:
                async with self.uow_factory() as uow:
                    if await self.reservation_manager.expire_one(
                        uow, reservation_id=reservation_id, now=now
                    ):
                        await uow.commit()
                        released_in_batch += 1

            released_total += released_in_batch
            if len(candidate_ids) < self.batch_size or released_in_batch == 0:
                break

        if released_total:
            metrics.record_release(status='expired', source='sweeper', count=released_total)
            Logger.base.info(f'🧹 [SWEEPER] Released {released_total} expired reservations')
        return released_total
