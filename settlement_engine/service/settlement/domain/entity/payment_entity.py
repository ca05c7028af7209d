from datetime import datetime
from typing import Optional
from uuid import UUID

import attrs
from uuid_utils.compat import uuid7

from settlement_engine.platform.exception.exceptions import DomainError
from settlement_engine.service.settlement.domain.enum.payment_status import PaymentStatus


@attrs.define
class Payment:
    """Money movement reported by the provider; one row per provider payment id"""

    id: UUID
    event_id: UUID
    provider_payment_id: str
    amount_cents: int
    currency: str
    status: PaymentStatus
    created_at: datetime
    reservation_id: Optional[UUID] = None
    checkout_session_id: Optional[str] = None
    platform_fee_cents: int = 0

    @classmethod
    def record(
        cls,
        *,
        event_id: UUID,
        provider_payment_id: str,
        amount_cents: int,
        currency: str,
        status: PaymentStatus,
        platform_fee_percent: int,
        now: datetime,
        reservation_id: Optional[UUID] = None,
        checkout_session_id: Optional[str] = None,
    ) -> 'Payment':
        if not provider_payment_id:
            raise DomainError('provider_payment_id is required')
        if amount_cents < 0:
            raise DomainError('amount_cents must not be negative')

        return cls(
            id=uuid7(),
            event_id=event_id,
            reservation_id=reservation_id,
            checkout_session_id=checkout_session_id,
            provider_payment_id=provider_payment_id,
            amount_cents=amount_cents,
            currency=currency.lower(),
            status=status,
            platform_fee_cents=amount_cents * platform_fee_percent // 100,
            created_at=now,
        )
