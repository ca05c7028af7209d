from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reservation.app.interface.i_reservation_repo import (
    IReservationRepo,
)
from settlement_engine.service.reservation.domain.entity.reservation_entity import Reservation
from settlement_engine.service.reservation.domain.enum.reservation_status import (
    ReservationStatus,
)
from settlement_engine.service.reservation.driven_adapter.model.reservation_model import (
    ReservationModel,
)


class ReservationRepoImpl(IReservationRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(db_reservation: ReservationModel) -> Reservation:
        return Reservation(
            id=db_reservation.id,
            event_id=db_reservation.event_id,
            inventory_id=db_reservation.inventory_id,
            ticket_type_id=db_reservation.ticket_type_id,
            user_id=db_reservation.user_id,
            quantity=db_reservation.quantity,
            unit_price_cents=db_reservation.unit_price_cents,
            status=ReservationStatus(db_reservation.status),
            created_at=db_reservation.created_at,
            expires_at=db_reservation.expires_at,
            consumed_at=db_reservation.consumed_at,
            released_at=db_reservation.released_at,
            checkout_session_id=db_reservation.checkout_session_id,
        )

    async def _fetch_one(self, stmt) -> Optional[Reservation]:
        db_reservation = (
            await self.session.execute(stmt.execution_options(populate_existing=True))
        ).scalar_one_or_none()
        return self._to_entity(db_reservation) if db_reservation else None

    @Logger.io
    async def create(self, *, reservation: Reservation) -> Reservation:
        self.session.add(
            ReservationModel(
                id=reservation.id,
                event_id=reservation.event_id,
                inventory_id=reservation.inventory_id,
                ticket_type_id=reservation.ticket_type_id,
                user_id=reservation.user_id,
                quantity=reservation.quantity,
                unit_price_cents=reservation.unit_price_cents,
                status=reservation.status.value,
                created_at=reservation.created_at,
                expires_at=reservation.expires_at,
                consumed_at=reservation.consumed_at,
                released_at=reservation.released_at,
                checkout_session_id=reservation.checkout_session_id,
            )
        )
        await self.session.flush()
        return reservation

    @Logger.io
    async def get_by_id(self, *, reservation_id: UUID) -> Optional[Reservation]:
        return await self._fetch_one(
            select(ReservationModel).where(ReservationModel.id == reservation_id)
        )

    @Logger.io
    async def get_for_update(self, *, reservation_id: UUID) -> Optional[Reservation]:
        return await self._fetch_one(
            select(ReservationModel).where(ReservationModel.id == reservation_id).with_for_update()
        )

    @Logger.io
    async def get_pending_for_update_skip_locked(
        self, *, reservation_id: UUID
    ) -> Optional[Reservation]:
        return await self._fetch_one(
            select(ReservationModel)
            .where(
                ReservationModel.id == reservation_id,
                ReservationModel.status == ReservationStatus.PENDING.value,
            )
            .with_for_update(skip_locked=True)
        )

    @Logger.io
    async def get_by_checkout_session_id(self, *, session_id: str) -> Optional[Reservation]:
        return await self._fetch_one(
            select(ReservationModel).where(ReservationModel.checkout_session_id == session_id)
        )

    @Logger.io
    async def list_expired_pending_ids(self, *, now: datetime, limit: int) -> List[UUID]:
        result = await self.session.execute(
            select(ReservationModel.id)
            .where(
                ReservationModel.status == ReservationStatus.PENDING.value,
                ReservationModel.expires_at <= now,
            )
            .order_by(ReservationModel.expires_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    @Logger.io
    async def update(self, *, reservation: Reservation) -> Reservation:
        await self.session.execute(
            update(ReservationModel)
            .where(ReservationModel.id == reservation.id)
            .values(
                status=reservation.status.value,
                consumed_at=reservation.consumed_at,
                released_at=reservation.released_at,
                expires_at=reservation.expires_at,
                checkout_session_id=reservation.checkout_session_id,
            )
        )
        return reservation
