from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class CheckoutCreateRequest(BaseModel):
    reservation_id: UUID
    success_url: str
    cancel_url: str

    class Config:
        json_schema_extra = {
            'example': {
                'reservation_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',
                'success_url': 'https://example.com/checkout/success?session_id={CHECKOUT_SESSION_ID}',
                'cancel_url': 'https://example.com/checkout/cancel',
            }
        }


class CheckoutResponse(BaseModel):
    checkout_url: str
    session_id: str
    expires_at: datetime


class WebhookAckResponse(BaseModel):
    received: bool = True
    outcome: str
    reservation_id: Optional[UUID] = None
