"""
Settlement Processor - idempotent handling of payment provider webhooks

One provider event is processed in exactly one transaction:
1. Claim the event id in the idempotency ledger (savepoint insert)
   - already claimed → duplicate, nothing else happens
2. Apply the ledger change for the event type
3. Store the final outcome on the ledger row
4. Commit; any failure rolls back the claim too, so redelivery retries
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from settlement_engine.platform.config.core_setting import Settings
from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.exception.exceptions import MalformedExternalEventError
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.platform.metrics.settlement_metrics import metrics
from settlement_engine.service.reservation.app.dto.reservation_dto import ConsumeOutcome
from settlement_engine.service.reservation.app.reservation_manager import ReservationManager
from settlement_engine.service.reservation.domain.entity.reservation_entity import Reservation
from settlement_engine.service.reservation.domain.enum.reservation_status import (
    ReservationStatus,
)
from settlement_engine.service.settlement.app.dto.external_event_dto import (
    ExternalEvent,
    WebhookResult,
)
from settlement_engine.service.settlement.domain.entity.payment_entity import Payment
from settlement_engine.service.settlement.domain.entity.processed_external_event_entity import (
    ProcessedExternalEvent,
)
from settlement_engine.service.settlement.domain.enum.payment_status import PaymentStatus
from settlement_engine.service.settlement.domain.enum.webhook_outcome import WebhookOutcome


PAYMENT_SUCCEEDED_EVENTS = frozenset(
    {
        'checkout.session.completed',
        'checkout.session.async_payment_succeeded',
        'payment_intent.succeeded',
    }
)
SESSION_EXPIRED_EVENTS = frozenset({'checkout.session.expired'})
PAYMENT_FAILED_EVENTS = frozenset(
    {
        'checkout.session.async_payment_failed',
        'payment_intent.payment_failed',
    }
)

_CONSUME_OUTCOMES = {
    ConsumeOutcome.CONSUMED: WebhookOutcome.CONSUMED,
    ConsumeOutcome.ALREADY_CONSUMED: WebhookOutcome.ALREADY_CONSUMED,
    ConsumeOutcome.EXPIRED: WebhookOutcome.RESERVATION_EXPIRED,
    ConsumeOutcome.LAPSED: WebhookOutcome.RESERVATION_EXPIRED,
}


class HandleExternalEventUseCase:
    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        reservation_manager: ReservationManager,
        currency: str,
        platform_fee_percent: int,
    ) -> None:
        self.uow_factory = uow_factory
        self.reservation_manager = reservation_manager
        self.currency = currency
        self.platform_fee_percent = platform_fee_percent
        self.tracer = trace.get_tracer(__name__)

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
            currency=config.STRIPE_CURRENCY,
            platform_fee_percent=config.PLATFORM_FEE_PERCENT,
        )

    @Logger.io
    async def execute(self, *, event: ExternalEvent) -> WebhookResult:
        with self.tracer.start_as_current_span(
            'use_case.handle_external_event',
            attributes={'external_event.id': event.id, 'external_event.type': event.type},
        ) as span:
            now = datetime.now(timezone.utc)
            async with self.uow_factory() as uow:
                claimed = await uow.processed_event_repo.try_insert(
                    event=ProcessedExternalEvent(
                        external_event_id=event.id,
                        event_type=event.type,
                        processed_at=now,
                    )
                )
                if not claimed:
                    Logger.base.info(f'🔁 [WEBHOOK] {event.id} ({event.type}) already processed')
                    metrics.record_webhook_event(
                        event_type=event.type, outcome=WebhookOutcome.DUPLICATE.value
                    )
                    return WebhookResult(outcome=WebhookOutcome.DUPLICATE)

                try:
                    result = await self._dispatch(uow, event=event, now=now)
                except MalformedExternalEventError as e:
                    Logger.base.warning(
                        f'⚠️ [WEBHOOK] {event.id} ({event.type}) malformed: {e.message}'
                    )
                    result = WebhookResult(outcome=WebhookOutcome.MALFORMED)

                await uow.processed_event_repo.set_outcome(
                    external_event_id=event.id,
                    outcome=result.outcome,
                    reservation_id=result.reservation_id,
                )
                await uow.commit()

            span.set_attribute('webhook.outcome', result.outcome.value)
            metrics.record_webhook_event(event_type=event.type, outcome=result.outcome.value)
            Logger.base.info(
                f'📨 [WEBHOOK] {event.id} ({event.type}) → {result.outcome} '
                f'reservation={result.reservation_id}'
            )
            return result

    async def _dispatch(
        self, uow: AbstractUnitOfWork, *, event: ExternalEvent, now: datetime
    ) -> WebhookResult:
        if event.type in PAYMENT_SUCCEEDED_EVENTS:
            return await self._settle_payment(uow, event=event, now=now)
        if event.type in SESSION_EXPIRED_EVENTS:
            return await self._release(uow, event=event, status=ReservationStatus.EXPIRED, now=now)
        if event.type in PAYMENT_FAILED_EVENTS:
            return await self._release(
                uow, event=event, status=ReservationStatus.CANCELLED, now=now
            )
        return WebhookResult(outcome=WebhookOutcome.IGNORED)

    @staticmethod
    def _is_session_event(event: ExternalEvent) -> bool:
        return event.type.startswith('checkout.session.')

    @staticmethod
    def _metadata(payload: Dict[str, Any]) -> Dict[str, Any]:
        metadata = payload.get('metadata')
        return metadata if isinstance(metadata, dict) else {}

    async def _resolve_reservation(
        self, uow: AbstractUnitOfWork, *, event: ExternalEvent
    ) -> Optional[Reservation]:
        """By checkout session id first, then metadata.reservation_id / client_reference_id"""
        payload = event.payload
        if self._is_session_event(event) and isinstance(payload.get('id'), str):
            reservation = await uow.reservation_repo.get_by_checkout_session_id(
                session_id=payload['id']
            )
            if reservation is not None:
                return reservation

        raw_id = self._metadata(payload).get('reservation_id') or payload.get('client_reference_id')
        if not raw_id:
            raise MalformedExternalEventError('No reservation reference in payload')
        try:
            reservation_id = UUID(str(raw_id))
        except ValueError as e:
            raise MalformedExternalEventError(f'Invalid reservation reference {raw_id!r}') from e

        return await uow.reservation_repo.get_by_id(reservation_id=reservation_id)

    def _payment_details(self, event: ExternalEvent) -> tuple[str, int, str]:
        payload = event.payload
        if self._is_session_event(event):
            payment_intent = payload.get('payment_intent')
            if isinstance(payment_intent, dict):
                payment_intent = payment_intent.get('id')
            provider_payment_id = payment_intent or payload.get('id')
            amount = payload.get('amount_total')
        else:
            provider_payment_id = payload.get('id')
            amount = payload.get('amount_received', payload.get('amount'))

        if not isinstance(provider_payment_id, str) or not provider_payment_id:
            raise MalformedExternalEventError('Payment has no provider id')
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise MalformedExternalEventError('Payment has no integer amount')

        currency = payload.get('currency') or self.currency
        return provider_payment_id, amount, str(currency)

    async def _settle_payment(
        self, uow: AbstractUnitOfWork, *, event: ExternalEvent, now: datetime
    ) -> WebhookResult:
        payload = event.payload
        if event.type == 'checkout.session.completed' and payload.get('payment_status') != 'paid':
            # Delayed payment methods settle later through async_payment_succeeded
            return WebhookResult(outcome=WebhookOutcome.IGNORED)
        if not self._is_session_event(event) and not self._metadata(payload).get('reservation_id'):
            return WebhookResult(outcome=WebhookOutcome.IGNORED)

        provider_payment_id, amount_cents, currency = self._payment_details(event)
        reservation = await self._resolve_reservation(uow, event=event)
        if reservation is None:
            Logger.base.error(
                f'💸 [WEBHOOK] Payment {provider_payment_id} ({amount_cents} {currency}) '
                f'matches no reservation; manual refund required'
            )
            return WebhookResult(outcome=WebhookOutcome.RESERVATION_NOT_FOUND)

        # Lock order: reservation row, then the payment row that references it
        consume_result = await self.reservation_manager.consume(
            uow, reservation_id=reservation.id, now=now
        )
        await uow.payment_repo.create_if_absent(
            payment=Payment.record(
                event_id=reservation.event_id,
                reservation_id=reservation.id,
                checkout_session_id=payload.get('id')
                if self._is_session_event(event)
                else reservation.checkout_session_id,
                provider_payment_id=provider_payment_id,
                amount_cents=amount_cents,
                currency=currency,
                status=PaymentStatus.SUCCEEDED,
                platform_fee_percent=self.platform_fee_percent,
                now=now,
            )
        )

        outcome = _CONSUME_OUTCOMES[consume_result.outcome]
        if consume_result.outcome == ConsumeOutcome.CONSUMED:
            metrics.record_consume(
                outcome=consume_result.outcome.value,
                tickets_issued=len(consume_result.tickets),
            )
        elif outcome == WebhookOutcome.RESERVATION_EXPIRED:
            if consume_result.outcome == ConsumeOutcome.LAPSED:
                metrics.record_release(status='expired', source='webhook')
            Logger.base.error(
                f'💸 [WEBHOOK] Payment {provider_payment_id} ({amount_cents} {currency}) '
                f'arrived for {consume_result.reservation.status} reservation {reservation.id}; '
                f'refund required'
            )
        return WebhookResult(outcome=outcome, reservation_id=reservation.id)

    async def _release(
        self,
        uow: AbstractUnitOfWork,
        *,
        event: ExternalEvent,
        status: ReservationStatus,
        now: datetime,
    ) -> WebhookResult:
        reservation = await self._resolve_reservation(uow, event=event)
        if reservation is None:
            return WebhookResult(outcome=WebhookOutcome.RESERVATION_NOT_FOUND)

        session_id = event.payload.get('id') if self._is_session_event(event) else None
        if (
            session_id
            and reservation.checkout_session_id
            and reservation.checkout_session_id != session_id
        ):
            # A superseded session ending says nothing about the live one
            return WebhookResult(outcome=WebhookOutcome.IGNORED, reservation_id=reservation.id)

        release_result = await self.reservation_manager.release(
            uow, reservation_id=reservation.id, status=status, now=now
        )
        if not release_result.released:
            return WebhookResult(
                outcome=WebhookOutcome.ALREADY_TERMINAL, reservation_id=reservation.id
            )

        metrics.record_release(status=status.value, source='webhook')
        return WebhookResult(outcome=WebhookOutcome.RELEASED, reservation_id=reservation.id)
