from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from settlement_engine.platform.database.orm_db_setting import Base, UTCDateTime


class TicketModel(Base):
    __tablename__ = 'ticket'

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)  # UUID7
    # Every ticket traces back to exactly one reservation
    reservation_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey('reservation.id', ondelete='RESTRICT'), nullable=False, index=True
    )
    event_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    ticket_type_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='active')
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    issued_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
