from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from settlement_engine.platform.database.orm_db_setting import Base, UTCDateTime


class ReservationModel(Base):
    __tablename__ = 'reservation'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_reservation_quantity_positive'),
        CheckConstraint('expires_at > created_at', name='ck_reservation_expiry_after_creation'),
        CheckConstraint(
            "status IN ('pending', 'consumed', 'expired', 'cancelled')",
            name='ck_reservation_status',
        ),
        CheckConstraint(
            "status <> 'consumed' OR consumed_at IS NOT NULL",
            name='ck_reservation_consumed_at',
        ),
        CheckConstraint(
            "status NOT IN ('expired', 'cancelled') OR released_at IS NOT NULL",
            name='ck_reservation_released_at',
        ),
        # Sweeper scan
        Index(
            'ix_reservation_pending_expires_at',
            'expires_at',
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)  # UUID7
    event_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    inventory_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey('inventory.id', ondelete='RESTRICT'), nullable=False, index=True
    )
    ticket_type_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    consumed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    released_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    checkout_session_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, unique=True
    )
