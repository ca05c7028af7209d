from datetime import datetime, timedelta, timezone
from typing import Callable, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from settlement_engine.platform.config.core_setting import Settings
from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.exception.exceptions import (
    DomainError,
    ForbiddenError,
    PaymentProviderError,
    ReservationExpiredError,
    ReservationNotFoundError,
)
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reservation.domain.entity.reservation_entity import Reservation
from settlement_engine.service.reservation.domain.enum.reservation_status import (
    ReservationStatus,
)
from settlement_engine.service.settlement.app.dto.external_event_dto import CheckoutResult
from settlement_engine.service.settlement.app.interface.i_checkout_session_provider import (
    ICheckoutSessionProvider,
)


class CreateCheckoutUseCase:
    """
    Open a hosted checkout session for a pending reservation.

    Flow:
    1. Read and validate the reservation (short read transaction)
    2. Reuse the attached session if it is still open at the provider
    3. Otherwise create a new session outside any transaction
    4. Lock the reservation row, re-check it is still pending, attach the session
    5. Expire the superseded session at the provider

    Never touches inventory.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        checkout_session_provider: ICheckoutSessionProvider,
        session_min_ttl_minutes: int,
        platform_fee_percent: int,
    ) -> None:
        self.uow_factory = uow_factory
        self.checkout_session_provider = checkout_session_provider
        self.session_min_ttl = timedelta(minutes=session_min_ttl_minutes)
        self.platform_fee_percent = platform_fee_percent
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[[], AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        checkout_session_provider: ICheckoutSessionProvider = Depends(
            Provide[Container.checkout_session_provider]
        ),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            uow_factory=uow_factory,
            checkout_session_provider=checkout_session_provider,
            session_min_ttl_minutes=config.CHECKOUT_SESSION_MIN_TTL_MINUTES,
            platform_fee_percent=config.PLATFORM_FEE_PERCENT,
        )

    @staticmethod
    def _validate(reservation: Reservation | None, *, user_id: UUID, now: datetime) -> Reservation:
        if reservation is None:
            raise ReservationNotFoundError()
        if reservation.user_id != user_id:
            raise ForbiddenError('Only the owner can check out this reservation')
        if reservation.status != ReservationStatus.PENDING or reservation.has_lapsed(now=now):
            raise ReservationExpiredError()
        if reservation.unit_price_cents <= 0:
            raise DomainError('Invalid ticket pricing')
        return reservation

    @Logger.io
    async def execute(
        self,
        *,
        reservation_id: UUID,
        user_id: UUID,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutResult:
        with self.tracer.start_as_current_span(
            'use_case.create_checkout',
            attributes={'reservation.id': str(reservation_id)},
        ) as span:
            now = datetime.now(timezone.utc)
            async with self.uow_factory() as uow:
                reservation = await uow.reservation_repo.get_by_id(reservation_id=reservation_id)
            reservation = self._validate(reservation, user_id=user_id, now=now)

            if reservation.checkout_session_id:
                existing = await self.checkout_session_provider.retrieve_session(
                    session_id=reservation.checkout_session_id
                )
                if existing.is_open and existing.url:
                    span.set_attribute('checkout.reused', True)
                    return CheckoutResult(
                        checkout_url=existing.url,
                        session_id=existing.id,
                        expires_at=reservation.expires_at,
                    )

            # Provider minimum is 30 minutes out; the hold is extended to match on attach
            session_expires_at = max(reservation.expires_at, now + self.session_min_ttl)
            total_cents = reservation.total_price_cents
            metadata = {
                'reservation_id': str(reservation.id),
                'event_id': str(reservation.event_id),
                'user_id': str(reservation.user_id),
                'quantity': str(reservation.quantity),
                'platform_fee_cents': str(total_cents * self.platform_fee_percent // 100),
            }
            if reservation.ticket_type_id:
                metadata['ticket_type_id'] = str(reservation.ticket_type_id)

            # Same request, same key: retries within a second collapse onto one session
            idempotency_key = (
                f'checkout_{reservation.id}_{reservation.checkout_session_id or "initial"}'
                f'_{int(session_expires_at.timestamp())}'
            )
            session = await self.checkout_session_provider.create_session(
                client_reference_id=str(reservation.id),
                line_item_name=f'Tickets for event {reservation.event_id}',
                unit_amount_cents=reservation.unit_price_cents,
                quantity=reservation.quantity,
                success_url=success_url,
                cancel_url=cancel_url,
                expires_at=session_expires_at,
                metadata=metadata,
                idempotency_key=idempotency_key,
            )

            superseded_session_id = None
            async with self.uow_factory() as uow:
                locked = await uow.reservation_repo.get_for_update(reservation_id=reservation_id)
                if (
                    locked is None
                    or locked.status != ReservationStatus.PENDING
                    or locked.has_lapsed(now=datetime.now(timezone.utc))
                ):
                    attached = None
                else:
                    superseded_session_id = locked.checkout_session_id
                    attached = locked.attach_checkout_session(
                        session_id=session.id, hold_until=session_expires_at
                    )
                    await uow.reservation_repo.update(reservation=attached)
                    await uow.commit()

            if attached is None:
                # Hold ended while the provider call was in flight
                await self._expire_quietly(session_id=session.id)
                raise ReservationExpiredError()

            if superseded_session_id and superseded_session_id != session.id:
                await self._expire_quietly(session_id=superseded_session_id)

            span.set_attribute('checkout.session_id', session.id)
            Logger.base.info(
                f'💳 [CHECKOUT] Reservation {reservation.id} → session {session.id} '
                f'({reservation.quantity} x {reservation.unit_price_cents} cents)'
            )
            return CheckoutResult(
                checkout_url=session.url or '',
                session_id=session.id,
                expires_at=attached.expires_at,
            )

    async def _expire_quietly(self, *, session_id: str) -> None:
        try:
            await self.checkout_session_provider.expire_session(session_id=session_id)
        except PaymentProviderError as e:
            # Already completed or expired sessions cannot be expired again
            Logger.base.warning(f'⚠️ [CHECKOUT] Could not expire session {session_id}: {e.message}')
