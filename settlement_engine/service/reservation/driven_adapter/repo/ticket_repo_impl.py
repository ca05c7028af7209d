from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reservation.app.interface.i_ticket_repo import ITicketRepo
from settlement_engine.service.reservation.domain.entity.ticket_entity import Ticket
from settlement_engine.service.reservation.domain.enum.ticket_status import TicketStatus
from settlement_engine.service.reservation.driven_adapter.model.ticket_model import TicketModel


class TicketRepoImpl(ITicketRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(db_ticket: TicketModel) -> Ticket:
        return Ticket(
            id=db_ticket.id,
            reservation_id=db_ticket.reservation_id,
            event_id=db_ticket.event_id,
            ticket_type_id=db_ticket.ticket_type_id,
            user_id=db_ticket.user_id,
            token=db_ticket.token,
            status=TicketStatus(db_ticket.status),
            price_cents=db_ticket.price_cents,
            issued_at=db_ticket.issued_at,
        )

    @Logger.io(truncate_content=True)
    async def create_many(self, *, tickets: List[Ticket]) -> List[Ticket]:
        self.session.add_all(
            [
                TicketModel(
                    id=ticket.id,
                    reservation_id=ticket.reservation_id,
                    event_id=ticket.event_id,
                    ticket_type_id=ticket.ticket_type_id,
                    user_id=ticket.user_id,
                    token=ticket.token,
                    status=ticket.status.value,
                    price_cents=ticket.price_cents,
                    issued_at=ticket.issued_at,
                )
                for ticket in tickets
            ]
        )
        await self.session.flush()
        return tickets

    @Logger.io
    async def list_by_reservation(self, *, reservation_id: UUID) -> List[Ticket]:
        result = await self.session.execute(
            select(TicketModel)
            .where(TicketModel.reservation_id == reservation_id)
            .order_by(TicketModel.id)
        )
        return [self._to_entity(row) for row in result.scalars().all()]
