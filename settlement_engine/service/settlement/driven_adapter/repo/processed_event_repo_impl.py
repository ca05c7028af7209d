from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.settlement.app.interface.i_processed_event_repo import (
    IProcessedEventRepo,
)
from settlement_engine.service.settlement.domain.entity.processed_external_event_entity import (
    ProcessedExternalEvent,
)
from settlement_engine.service.settlement.domain.enum.webhook_outcome import WebhookOutcome
from settlement_engine.service.settlement.driven_adapter.model.processed_external_event_model import (
    ProcessedExternalEventModel,
)


class ProcessedEventRepoImpl(IProcessedEventRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @Logger.io
    async def try_insert(self, *, event: ProcessedExternalEvent) -> bool:
        # Savepoint: a duplicate key only rolls back the insert, not the caller's transaction
        try:
            async with self.session.begin_nested():
                self.session.add(
                    ProcessedExternalEventModel(
                        external_event_id=event.external_event_id,
                        event_type=event.event_type,
                        outcome=event.outcome.value if event.outcome else None,
                        reservation_id=event.reservation_id,
                        processed_at=event.processed_at,
                    )
                )
                await self.session.flush()
        except IntegrityError:
            return False
        return True

    @Logger.io
    async def set_outcome(
        self,
        *,
        external_event_id: str,
        outcome: WebhookOutcome,
        reservation_id: Optional[UUID] = None,
    ) -> None:
        await self.session.execute(
            update(ProcessedExternalEventModel)
            .where(ProcessedExternalEventModel.external_event_id == external_event_id)
            .values(outcome=outcome.value, reservation_id=reservation_id)
        )

    @Logger.io
    async def get(self, *, external_event_id: str) -> Optional[ProcessedExternalEvent]:
        result = await self.session.execute(
            select(ProcessedExternalEventModel).where(
                ProcessedExternalEventModel.external_event_id == external_event_id
            )
        )
        db_event = result.scalar_one_or_none()
        if db_event is None:
            return None
        return ProcessedExternalEvent(
            external_event_id=db_event.external_event_id,
            event_type=db_event.event_type,
            outcome=WebhookOutcome(db_event.outcome) if db_event.outcome else None,
            reservation_id=db_event.reservation_id,
            processed_at=db_event.processed_at,
        )
