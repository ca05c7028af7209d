"""
Unit tests for HandleExternalEventUseCase

Focus:
1. The idempotency claim gates every side effect
2. Event type → ledger change mapping
3. Payments that cannot be settled are acknowledged, never retried
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from uuid_utils.compat import uuid7

from settlement_engine.service.reservation.app.dto.reservation_dto import (
    ConsumeOutcome,
    ConsumeResult,
    ReleaseResult,
)
from settlement_engine.service.reservation.domain.entity.inventory_entity import Inventory
from settlement_engine.service.reservation.domain.entity.reservation_entity import Reservation
from settlement_engine.service.reservation.domain.enum.reservation_status import (
    ReservationStatus,
)
from settlement_engine.service.settlement.app.command.handle_external_event_use_case import (
    HandleExternalEventUseCase,
)
from settlement_engine.service.settlement.app.dto.external_event_dto import ExternalEvent
from settlement_engine.service.settlement.domain.enum.webhook_outcome import WebhookOutcome


class RepositoryMocks:
    """Mock Unit of Work whose repositories the use case talks to"""

    def __init__(self, *, reservation: Reservation | None, claimed: bool = True):
        self.uow = MagicMock()
        self.uow.__aenter__.return_value = self.uow
        self.uow.__aexit__.return_value = False
        self.uow.commit = AsyncMock()

        self.uow.processed_event_repo = AsyncMock()
        self.uow.processed_event_repo.try_insert = AsyncMock(return_value=claimed)
        self.uow.reservation_repo = AsyncMock()
        self.uow.reservation_repo.get_by_checkout_session_id = AsyncMock(return_value=reservation)
        self.uow.reservation_repo.get_by_id = AsyncMock(return_value=reservation)
        self.uow.payment_repo = AsyncMock()

        self.manager = AsyncMock()

    def use_case(self) -> HandleExternalEventUseCase:
        return HandleExternalEventUseCase(
            uow_factory=lambda: self.uow,
            reservation_manager=self.manager,
            currency='usd',
            platform_fee_percent=10,
        )


@pytest.fixture
def reservation() -> Reservation:
    inventory = Inventory.create(event_id=uuid7(), total_capacity=10, price_cents=2500)
    created = Reservation.create(
        inventory=inventory,
        user_id=uuid7(),
        quantity=2,
        ttl=timedelta(minutes=10),
        max_quantity=10,
        now=datetime.now(timezone.utc),
    )
    return created.attach_checkout_session(session_id='cs_live')


def _completed(reservation: Reservation, **overrides) -> ExternalEvent:
    payload = {
        'id': 'cs_live',
        'payment_intent': 'pi_1',
        'payment_status': 'paid',
        'amount_total': 5000,
        'currency': 'usd',
        'metadata': {'reservation_id': str(reservation.id)},
    }
    payload.update(overrides)
    return ExternalEvent(id='evt_1', type='checkout.session.completed', payload=payload)


@pytest.mark.asyncio
async def test_duplicate_delivery_has_no_side_effects(reservation):
    mocks = RepositoryMocks(reservation=reservation, claimed=False)

    result = await mocks.use_case().execute(event=_completed(reservation))

    assert result.outcome == WebhookOutcome.DUPLICATE
    mocks.manager.consume.assert_not_awaited()
    mocks.uow.payment_repo.create_if_absent.assert_not_awaited()
    mocks.uow.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_paid_session_consumes_then_records_payment(reservation):
    mocks = RepositoryMocks(reservation=reservation)
    consumed = reservation.mark_consumed(now=datetime.now(timezone.utc))
    mocks.manager.consume = AsyncMock(
        return_value=ConsumeResult(
            outcome=ConsumeOutcome.CONSUMED, reservation=consumed, tickets=['t1', 't2']
        )
    )

    result = await mocks.use_case().execute(event=_completed(reservation))

    assert result.outcome == WebhookOutcome.CONSUMED
    assert result.reservation_id == reservation.id
    payment = mocks.uow.payment_repo.create_if_absent.call_args.kwargs['payment']
    assert payment.provider_payment_id == 'pi_1'
    assert payment.amount_cents == 5000
    assert payment.platform_fee_cents == 500
    assert payment.checkout_session_id == 'cs_live'
    mocks.uow.processed_event_repo.set_outcome.assert_awaited_once_with(
        external_event_id='evt_1',
        outcome=WebhookOutcome.CONSUMED,
        reservation_id=reservation.id,
    )
    mocks.uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_payment_after_hold_lapsed_is_reported_not_retried(reservation):
    mocks = RepositoryMocks(reservation=reservation)
    expired = reservation.mark_released(
        status=ReservationStatus.EXPIRED, now=datetime.now(timezone.utc)
    )
    mocks.manager.consume = AsyncMock(
        return_value=ConsumeResult(outcome=ConsumeOutcome.LAPSED, reservation=expired)
    )

    result = await mocks.use_case().execute(event=_completed(reservation))

    assert result.outcome == WebhookOutcome.RESERVATION_EXPIRED
    # Money moved, so the payment is still recorded for the refund trail
    mocks.uow.payment_repo.create_if_absent.assert_awaited_once()
    mocks.uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_unpaid_completed_session_is_ignored(reservation):
    mocks = RepositoryMocks(reservation=reservation)

    result = await mocks.use_case().execute(
        event=_completed(reservation, payment_status='unpaid')
    )

    assert result.outcome == WebhookOutcome.IGNORED
    mocks.manager.consume.assert_not_awaited()
    mocks.uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_payment_without_reservation_reference_is_malformed(reservation):
    mocks = RepositoryMocks(reservation=None)
    event = ExternalEvent(
        id='evt_2',
        type='checkout.session.completed',
        payload={'id': 'cs_unknown', 'payment_status': 'paid', 'amount_total': 100},
    )

    result = await mocks.use_case().execute(event=event)

    assert result.outcome == WebhookOutcome.MALFORMED
    mocks.manager.consume.assert_not_awaited()
    mocks.uow.processed_event_repo.set_outcome.assert_awaited_once()


@pytest.mark.asyncio
async def test_payment_for_unknown_reservation(reservation):
    mocks = RepositoryMocks(reservation=None)

    result = await mocks.use_case().execute(event=_completed(reservation))

    assert result.outcome == WebhookOutcome.RESERVATION_NOT_FOUND
    mocks.manager.consume.assert_not_awaited()


@pytest.mark.asyncio
async def test_expired_session_releases_the_hold(reservation):
    mocks = RepositoryMocks(reservation=reservation)
    mocks.manager.release = AsyncMock(
        return_value=ReleaseResult(reservation=reservation, released=True)
    )
    event = ExternalEvent(
        id='evt_3',
        type='checkout.session.expired',
        payload={'id': 'cs_live', 'metadata': {'reservation_id': str(reservation.id)}},
    )

    result = await mocks.use_case().execute(event=event)

    assert result.outcome == WebhookOutcome.RELEASED
    assert mocks.manager.release.call_args.kwargs['status'] == ReservationStatus.EXPIRED


@pytest.mark.asyncio
async def test_superseded_session_expiry_leaves_the_hold_alone(reservation):
    mocks = RepositoryMocks(reservation=None)
    mocks.uow.reservation_repo.get_by_id = AsyncMock(return_value=reservation)
    event = ExternalEvent(
        id='evt_4',
        type='checkout.session.expired',
        payload={'id': 'cs_old', 'metadata': {'reservation_id': str(reservation.id)}},
    )

    result = await mocks.use_case().execute(event=event)

    assert result.outcome == WebhookOutcome.IGNORED
    mocks.manager.release.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_payment_intent_cancels(reservation):
    mocks = RepositoryMocks(reservation=reservation)
    mocks.manager.release = AsyncMock(
        return_value=ReleaseResult(reservation=reservation, released=False)
    )
    event = ExternalEvent(
        id='evt_5',
        type='payment_intent.payment_failed',
        payload={'id': 'pi_9', 'metadata': {'reservation_id': str(reservation.id)}},
    )

    result = await mocks.use_case().execute(event=event)

    assert result.outcome == WebhookOutcome.ALREADY_TERMINAL
    assert mocks.manager.release.call_args.kwargs['status'] == ReservationStatus.CANCELLED


@pytest.mark.asyncio
async def test_unrelated_event_type_is_ignored(reservation):
    mocks = RepositoryMocks(reservation=reservation)
    event = ExternalEvent(id='evt_6', type='customer.created', payload={'id': 'cus_1'})

    result = await mocks.use_case().execute(event=event)

    assert result.outcome == WebhookOutcome.IGNORED
    mocks.uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_failure_inside_the_transaction_propagates(reservation):
    mocks = RepositoryMocks(reservation=reservation)
    mocks.manager.consume = AsyncMock(side_effect=RuntimeError('boom'))

    with pytest.raises(RuntimeError):
        await mocks.use_case().execute(event=_completed(reservation))

    mocks.uow.commit.assert_not_awaited()
