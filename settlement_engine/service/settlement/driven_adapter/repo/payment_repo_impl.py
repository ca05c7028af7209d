from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.settlement.app.interface.i_payment_repo import IPaymentRepo
from settlement_engine.service.settlement.domain.entity.payment_entity import Payment
from settlement_engine.service.settlement.domain.enum.payment_status import PaymentStatus
from settlement_engine.service.settlement.driven_adapter.model.payment_model import PaymentModel


class PaymentRepoImpl(IPaymentRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(db_payment: PaymentModel) -> Payment:
        return Payment(
            id=db_payment.id,
            reservation_id=db_payment.reservation_id,
            event_id=db_payment.event_id,
            checkout_session_id=db_payment.checkout_session_id,
            provider_payment_id=db_payment.provider_payment_id,
            amount_cents=db_payment.amount_cents,
            platform_fee_cents=db_payment.platform_fee_cents,
            currency=db_payment.currency,
            status=PaymentStatus(db_payment.status),
            created_at=db_payment.created_at,
        )

    @Logger.io
    async def create_if_absent(self, *, payment: Payment) -> Payment:
        try:
            async with self.session.begin_nested():
                self.session.add(
                    PaymentModel(
                        id=payment.id,
                        reservation_id=payment.reservation_id,
                        event_id=payment.event_id,
                        checkout_session_id=payment.checkout_session_id,
                        provider_payment_id=payment.provider_payment_id,
                        amount_cents=payment.amount_cents,
                        platform_fee_cents=payment.platform_fee_cents,
                        currency=payment.currency,
                        status=payment.status.value,
                        created_at=payment.created_at,
                    )
                )
                await self.session.flush()
            return payment
        except IntegrityError:
            existing = await self.get_by_provider_payment_id(
                provider_payment_id=payment.provider_payment_id
            )
            if existing is None:
                raise
            return existing

    @Logger.io
    async def get_by_provider_payment_id(self, *, provider_payment_id: str) -> Optional[Payment]:
        result = await self.session.execute(
            select(PaymentModel).where(PaymentModel.provider_payment_id == provider_payment_id)
        )
        db_payment = result.scalar_one_or_none()
        return self._to_entity(db_payment) if db_payment else None

    @Logger.io
    async def list_by_reservation(self, *, reservation_id: UUID) -> List[Payment]:
        result = await self.session.execute(
            select(PaymentModel)
            .where(PaymentModel.reservation_id == reservation_id)
            .order_by(PaymentModel.created_at)
        )
        return [self._to_entity(db_payment) for db_payment in result.scalars().all()]
