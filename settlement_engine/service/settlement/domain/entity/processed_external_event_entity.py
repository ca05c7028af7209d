from datetime import datetime
from typing import Optional
from uuid import UUID

import attrs

from settlement_engine.service.settlement.domain.enum.webhook_outcome import WebhookOutcome


@attrs.define
class ProcessedExternalEvent:
    external_event_id: str
    event_type: str
    processed_at: datetime
    outcome: Optional[WebhookOutcome] = None  # None until the handler finishes
    reservation_id: Optional[UUID] = None
