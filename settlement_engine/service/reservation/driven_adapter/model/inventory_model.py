from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, Integer, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from settlement_engine.platform.database.orm_db_setting import Base, UTCDateTime


class InventoryModel(Base):
    __tablename__ = 'inventory'
    __table_args__ = (
        CheckConstraint('total_capacity > 0', name='ck_inventory_capacity_positive'),
        CheckConstraint('price_cents >= 0', name='ck_inventory_price_non_negative'),
        CheckConstraint('reserved_count >= 0', name='ck_inventory_reserved_non_negative'),
        CheckConstraint('sold_count >= 0', name='ck_inventory_sold_non_negative'),
        CheckConstraint(
            'reserved_count + sold_count <= total_capacity',
            name='ck_inventory_within_capacity',
        ),
        UniqueConstraint('event_id', 'ticket_type_id', name='uq_inventory_event_ticket_type'),
        # NULLs are distinct in the unique constraint above; one untyped row per event
        Index(
            'uq_inventory_event_untyped',
            'event_id',
            unique=True,
            postgresql_where=text('ticket_type_id IS NULL'),
            sqlite_where=text('ticket_type_id IS NULL'),
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)  # UUID7
    event_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    ticket_type_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    reserved_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sold_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
