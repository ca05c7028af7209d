from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from settlement_engine.service.settlement.domain.entity.processed_external_event_entity import (
    ProcessedExternalEvent,
)
from settlement_engine.service.settlement.domain.enum.webhook_outcome import WebhookOutcome


class IProcessedEventRepo(ABC):
    @abstractmethod
    async def try_insert(self, *, event: ProcessedExternalEvent) -> bool:
        """
        Claim an external event id.

        Returns False when the id is already recorded (redelivery); the
        surrounding transaction stays usable either way.
        """
        pass

    @abstractmethod
    async def set_outcome(
        self,
        *,
        external_event_id: str,
        outcome: WebhookOutcome,
        reservation_id: Optional[UUID] = None,
    ) -> None:
        pass

    @abstractmethod
    async def get(self, *, external_event_id: str) -> Optional[ProcessedExternalEvent]:
        pass
