from datetime import datetime
from typing import Any, List
from uuid import UUID

from sqlalchemy import Boolean, Index, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from settlement_engine.platform.database.orm_db_setting import Base, JsonType, UTCDateTime


class ReconciliationResultModel(Base):
    __tablename__ = 'reconciliation_result'
    __table_args__ = (
        Index('ix_reconciliation_result_event_generated', 'event_id', 'generated_at'),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)  # UUID7
    event_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    generated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    has_discrepancies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    issues: Mapped[List[Any]] = mapped_column(JsonType, nullable=False, default=list)
    sold_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tickets_issued_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consumed_reservations_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    payments_succeeded_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expected_revenue_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    actual_revenue_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    revenue_discrepancy_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
