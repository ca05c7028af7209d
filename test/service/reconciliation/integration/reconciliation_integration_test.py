"""
Integration tests for ReconcileEvent / ReconcileDue

Sales are driven through the real settlement path (reserve → paid webhook),
then the ledgers are tampered with directly to provoke each discrepancy.
"""

from datetime import datetime, timedelta, timezone

import pytest
from uuid_utils.compat import uuid7

from settlement_engine.platform.exception.exceptions import DomainError, NotFoundError
from settlement_engine.service.reconciliation.app.command.reconcile_due_use_case import (
    ReconcileDueUseCase,
)
from settlement_engine.service.reconciliation.app.command.reconcile_event_use_case import (
    ReconcileEventUseCase,
)
from settlement_engine.service.reconciliation.app.query.list_reconciliation_reports_use_case import (
    ListReconciliationReportsUseCase,
)
from settlement_engine.service.reconciliation.domain.enum.issue_type import IssueType
from settlement_engine.service.reconciliation.driving_adapter.scheduler.reconciliation_scheduler import (
    ReconciliationScheduler,
)
from settlement_engine.service.reservation.domain.entity.ticket_entity import Ticket
from settlement_engine.service.settlement.app.command.handle_external_event_use_case import (
    HandleExternalEventUseCase,
)
from settlement_engine.service.settlement.app.dto.external_event_dto import ExternalEvent
from settlement_engine.service.settlement.domain.entity.payment_entity import Payment
from settlement_engine.service.settlement.domain.enum.payment_status import PaymentStatus


@pytest.fixture
def reconcile_event_use_case(uow_factory) -> ReconcileEventUseCase:
    return ReconcileEventUseCase(uow_factory=uow_factory, revenue_tolerance_cents=0)


@pytest.fixture
def reconcile_due_use_case(uow_factory, reconcile_event_use_case) -> ReconcileDueUseCase:
    return ReconcileDueUseCase(
        uow_factory=uow_factory, reconcile_event_use_case=reconcile_event_use_case
    )


@pytest.fixture
def sell(uow_factory, reservation_manager, reserve, checkout_session_event):
    """Reserve and settle through a paid checkout.session.completed event"""
    webhook = HandleExternalEventUseCase(
        uow_factory=uow_factory,
        reservation_manager=reservation_manager,
        currency='usd',
        platform_fee_percent=10,
    )

    async def _sell(*, event_id, user_id, quantity=1, price_cents=2500):
        reservation = await reserve(event_id=event_id, user_id=user_id, quantity=quantity)
        envelope = checkout_session_event(
            event_type='checkout.session.completed',
            session_id=f'cs_{uuid7().hex}',
            reservation_id=reservation.id,
            amount_total=quantity * price_cents,
            payment_intent=f'pi_{uuid7().hex}',
        )
        await webhook.execute(
            event=ExternalEvent(
                id=envelope['id'], type=envelope['type'], payload=envelope['data']['object']
            )
        )
        return reservation

    return _sell


def _issue_types(report) -> set:
    return {issue.type for issue in report.issues}


class TestReconcileEvent:
    @pytest.mark.asyncio
    async def test_settled_sales_reconcile_cleanly(
        self, create_inventory, sell, reconcile_event_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id, total_capacity=10, price_cents=2500)
        await sell(event_id=event_id, user_id=buyer_id, quantity=2)
        await sell(event_id=event_id, user_id=buyer_id, quantity=1)

        report = await reconcile_event_use_case.execute(event_id=event_id)

        assert not report.has_discrepancies
        assert report.sold_count == report.tickets_issued_count == 3
        assert report.consumed_reservations_count == report.payments_succeeded_count == 2
        assert report.expected_revenue_cents == report.actual_revenue_cents == 7500

    @pytest.mark.asyncio
    async def test_manually_inserted_ticket_is_flagged(
        self, uow_factory, create_inventory, sell, reconcile_event_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id, total_capacity=10)
        reservation = await sell(event_id=event_id, user_id=buyer_id, quantity=1)
        async with uow_factory() as uow:
            consumed = await uow.reservation_repo.get_by_id(reservation_id=reservation.id)
            await uow.ticket_repo.create_many(
                tickets=Ticket.issue_for(reservation=consumed, now=datetime.now(timezone.utc))
            )
            await uow.commit()

        report = await reconcile_event_use_case.execute(event_id=event_id)

        assert _issue_types(report) == {
            IssueType.SOLD_COUNT_MISMATCH,
            IssueType.RESERVATION_TICKET_COUNT_MISMATCH,
        }
        assert (report.sold_count, report.tickets_issued_count) == (1, 2)

    @pytest.mark.asyncio
    async def test_payment_for_expired_hold_is_flagged(
        self,
        uow_factory,
        create_inventory,
        reserve,
        reconcile_event_use_case,
        event_id,
        buyer_id,
    ):
        await create_inventory(event_id=event_id, total_capacity=10, price_cents=2500)
        reservation = await reserve(event_id=event_id, user_id=buyer_id)
        async with uow_factory() as uow:
            await uow.payment_repo.create_if_absent(
                payment=Payment.record(
                    event_id=event_id,
                    reservation_id=reservation.id,
                    provider_payment_id='pi_orphan',
                    amount_cents=2500,
                    currency='usd',
                    status=PaymentStatus.SUCCEEDED,
                    platform_fee_percent=10,
                    now=datetime.now(timezone.utc),
                )
            )
            await uow.commit()

        report = await reconcile_event_use_case.execute(event_id=event_id)

        assert IssueType.PAYMENTS_WITHOUT_CONSUMED_RESERVATION in _issue_types(report)
        assert report.revenue_discrepancy_cents == -2500

    @pytest.mark.asyncio
    async def test_reports_are_persisted_newest_first(
        self, uow_factory, create_inventory, reconcile_event_use_case, event_id
    ):
        await create_inventory(event_id=event_id)
        first = await reconcile_event_use_case.execute(event_id=event_id)
        second = await reconcile_event_use_case.execute(event_id=event_id)

        reports = await ListReconciliationReportsUseCase(uow_factory=uow_factory).execute(
            event_id=event_id
        )

        assert [r.id for r in reports] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_unknown_event(self, reconcile_event_use_case):
        with pytest.raises(NotFoundError):
            await reconcile_event_use_case.execute(event_id=uuid7())


class TestReconcileDue:
    @pytest.mark.asyncio
    async def test_only_events_with_recent_sales_are_reconciled(
        self, create_inventory, sell, reconcile_due_use_case, buyer_id
    ):
        sold_event, quiet_event = uuid7(), uuid7()
        await create_inventory(event_id=sold_event)
        await create_inventory(event_id=quiet_event)
        await sell(event_id=sold_event, user_id=buyer_id)

        summary = await reconcile_due_use_case.execute(hours_ago=24)

        assert (summary.reconciled, summary.failed) == (1, 0)
        assert summary.discrepancies == []

    @pytest.mark.asyncio
    async def test_clean_events_are_skipped_until_new_activity(
        self, create_inventory, sell, reconcile_due_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id)
        await sell(event_id=event_id, user_id=buyer_id)
        await reconcile_due_use_case.execute(hours_ago=24)

        assert (await reconcile_due_use_case.execute(hours_ago=24)).reconciled == 0

        await sell(event_id=event_id, user_id=buyer_id)
        assert (await reconcile_due_use_case.execute(hours_ago=24)).reconciled == 1

    @pytest.mark.asyncio
    async def test_events_with_discrepancies_are_rechecked(
        self, uow_factory, create_inventory, sell, reconcile_due_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id)
        reservation = await sell(event_id=event_id, user_id=buyer_id)
        async with uow_factory() as uow:
            consumed = await uow.reservation_repo.get_by_id(reservation_id=reservation.id)
            await uow.ticket_repo.create_many(
                tickets=Ticket.issue_for(reservation=consumed, now=datetime.now(timezone.utc))
            )
            await uow.commit()

        first = await reconcile_due_use_case.execute(hours_ago=24)
        second = await reconcile_due_use_case.execute(hours_ago=24)

        assert [d.event_id for d in first.discrepancies] == [event_id]
        assert second.reconciled == 1
        assert second.discrepancies[0].issues[0]['type'] == IssueType.SOLD_COUNT_MISMATCH.value

    @pytest.mark.asyncio
    async def test_activity_outside_the_window_is_ignored(
        self, create_inventory, sell, reconcile_due_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id)
        await sell(event_id=event_id, user_id=buyer_id)

        summary = await reconcile_due_use_case.execute(
            hours_ago=1, now=datetime.now(timezone.utc) + timedelta(hours=2)
        )

        assert summary.reconciled == 0

    @pytest.mark.asyncio
    async def test_hours_ago_must_be_positive(self, reconcile_due_use_case):
        with pytest.raises(DomainError):
            await reconcile_due_use_case.execute(hours_ago=0)

    @pytest.mark.asyncio
    async def test_scheduler_run_survives_failures(self):
        class ExplodingUseCase:
            async def execute(self, *, hours_ago, now=None):
                raise RuntimeError('database went away')

        scheduler = ReconciliationScheduler(use_case=ExplodingUseCase(), hours_ago=24)

        assert await scheduler.run_once() is None
