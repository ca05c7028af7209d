"""Provider-facing DTOs for the settlement service"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

import attrs

from settlement_engine.service.settlement.domain.enum.webhook_outcome import WebhookOutcome


@attrs.define(frozen=True)
class ExternalEvent:
    """A verified provider webhook event"""

    id: str
    type: str
    payload: Dict[str, Any]  # The event's data.object


@attrs.define(frozen=True)
class WebhookResult:
    outcome: WebhookOutcome
    reservation_id: Optional[UUID] = None


@attrs.define(frozen=True)
class ProviderCheckoutSession:
    id: str
    url: Optional[str]
    status: str  # open | complete | expired
    expires_at: datetime

    @property
    def is_open(self) -> bool:
        return self.status == 'open'


@attrs.define(frozen=True)
class CheckoutResult:
    checkout_url: str
    session_id: str
    expires_at: datetime  # The hold's deadline, not the provider session's
