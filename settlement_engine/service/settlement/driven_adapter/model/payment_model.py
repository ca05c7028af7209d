from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from settlement_engine.platform.database.orm_db_setting import Base, UTCDateTime


class PaymentModel(Base):
    __tablename__ = 'payment'
    __table_args__ = (
        CheckConstraint('amount_cents >= 0', name='ck_payment_amount_non_negative'),
        CheckConstraint("status = 'succeeded'", name='ck_payment_status'),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)  # UUID7
    reservation_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey('reservation.id', ondelete='RESTRICT'), nullable=True, index=True
    )
    event_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    checkout_session_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    provider_payment_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    platform_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
