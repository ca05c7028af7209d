from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict

from settlement_engine.service.settlement.app.dto.external_event_dto import (
    ProviderCheckoutSession,
)


class ICheckoutSessionProvider(ABC):
    """Hosted checkout at the payment provider"""

    @abstractmethod
    async def create_session(
        self,
        *,
        client_reference_id: str,
        line_item_name: str,
        unit_amount_cents: int,
        quantity: int,
        success_url: str,
        cancel_url: str,
        expires_at: datetime,
        metadata: Dict[str, str],
        idempotency_key: str,
    ) -> ProviderCheckoutSession:
        pass

    @abstractmethod
    async def retrieve_session(self, *, session_id: str) -> ProviderCheckoutSession:
        pass

    @abstractmethod
    async def expire_session(self, *, session_id: str) -> None:
        pass
