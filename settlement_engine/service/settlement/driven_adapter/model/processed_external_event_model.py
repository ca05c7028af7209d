from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from settlement_engine.platform.database.orm_db_setting import Base, UTCDateTime


class ProcessedExternalEventModel(Base):
    """Idempotency ledger: one row per provider event id, ever"""

    __tablename__ = 'processed_external_event'

    external_event_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    outcome: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reservation_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True, index=True)
    processed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
