from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reconciliation.app.interface.i_reconciliation_query_repo import (
    IReconciliationQueryRepo,
)
from settlement_engine.service.reconciliation.domain.entity.event_ledger_snapshot import (
    EventLedgerSnapshot,
    PaymentLedgerRow,
    ReservationLedgerRow,
)
from settlement_engine.service.reservation.domain.enum.reservation_status import (
    ReservationStatus,
)
from settlement_engine.service.reservation.domain.enum.ticket_status import TicketStatus
from settlement_engine.service.reservation.driven_adapter.model.inventory_model import (
    InventoryModel,
)
from settlement_engine.service.reservation.driven_adapter.model.reservation_model import (
    ReservationModel,
)
from settlement_engine.service.reservation.driven_adapter.model.ticket_model import TicketModel
from settlement_engine.service.settlement.domain.enum.payment_status import PaymentStatus
from settlement_engine.service.settlement.driven_adapter.model.payment_model import PaymentModel


class ReconciliationQueryRepoImpl(IReconciliationQueryRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @Logger.io
    async def load_event_snapshot(self, *, event_id: UUID) -> Optional[EventLedgerSnapshot]:
        inventory_count, sold_count = (
            await self.session.execute(
                select(
                    func.count(InventoryModel.id),
                    func.coalesce(func.sum(InventoryModel.sold_count), 0),
                ).where(InventoryModel.event_id == event_id)
            )
        ).one()
        if not inventory_count:
            return None

        ticket_count = (
            await self.session.execute(
                select(func.count(TicketModel.id)).where(
                    TicketModel.event_id == event_id,
                    TicketModel.status == TicketStatus.ACTIVE.value,
                )
            )
        ).scalar_one()

        tickets_per_reservation = (
            select(
                TicketModel.reservation_id,
                func.count(TicketModel.id).label('ticket_count'),
            )
            .where(
                TicketModel.event_id == event_id,
                TicketModel.status == TicketStatus.ACTIVE.value,
            )
            .group_by(TicketModel.reservation_id)
            .subquery()
        )
        reservation_rows = await self.session.execute(
            select(
                ReservationModel.id,
                ReservationModel.status,
                ReservationModel.quantity,
                ReservationModel.unit_price_cents,
                func.coalesce(tickets_per_reservation.c.ticket_count, 0),
            )
            .outerjoin(
                tickets_per_reservation,
                tickets_per_reservation.c.reservation_id == ReservationModel.id,
            )
            .where(
                ReservationModel.event_id == event_id,
                or_(
                    ReservationModel.status == ReservationStatus.CONSUMED.value,
                    tickets_per_reservation.c.ticket_count > 0,
                ),
            )
        )

        payment_rows = await self.session.execute(
            select(
                PaymentModel.id,
                PaymentModel.provider_payment_id,
                PaymentModel.amount_cents,
                PaymentModel.reservation_id,
            ).where(
                PaymentModel.event_id == event_id,
                PaymentModel.status == PaymentStatus.SUCCEEDED.value,
            )
        )

        return EventLedgerSnapshot(
            event_id=event_id,
            sold_count=int(sold_count),
            ticket_count=int(ticket_count),
            reservations=[
                ReservationLedgerRow(
                    id=row[0],
                    status=row[1],
                    quantity=row[2],
                    unit_price_cents=row[3],
                    ticket_count=int(row[4]),
                )
                for row in reservation_rows.all()
            ],
            payments=[
                PaymentLedgerRow(
                    id=row[0],
                    provider_payment_id=row[1],
                    amount_cents=row[2],
                    reservation_id=row[3],
                )
                for row in payment_rows.all()
            ],
        )

    @Logger.io
    async def list_sales_activity_since(self, *, since: datetime) -> Dict[UUID, datetime]:
        consumed = await self.session.execute(
            select(ReservationModel.event_id, func.max(ReservationModel.consumed_at))
            .where(
                ReservationModel.status == ReservationStatus.CONSUMED.value,
                ReservationModel.consumed_at >= since,
            )
            .group_by(ReservationModel.event_id)
        )
        paid = await self.session.execute(
            select(PaymentModel.event_id, func.max(PaymentModel.created_at))
            .where(PaymentModel.created_at >= since)
            .group_by(PaymentModel.event_id)
        )

        activity: Dict[UUID, datetime] = {}
        for event_id, latest in [*consumed.all(), *paid.all()]:
            if latest is not None and (event_id not in activity or latest > activity[event_id]):
                activity[event_id] = latest
        return activity
