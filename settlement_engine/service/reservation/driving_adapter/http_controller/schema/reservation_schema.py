from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class InventoryCreateRequest(BaseModel):
    event_id: UUID
    ticket_type_id: Optional[UUID] = None
    total_capacity: int = Field(gt=0)
    price_cents: int = Field(ge=0)

    class Config:
        json_schema_extra = {
            'example': {
                'event_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',
                'total_capacity': 500,
                'price_cents': 2500,
            }
        }


class InventoryResponse(BaseModel):
    id: UUID
    event_id: UUID
    ticket_type_id: Optional[UUID] = None
    total_capacity: int
    reserved_count: int
    sold_count: int
    available: int
    price_cents: int


class ReservationCreateRequest(BaseModel):
    event_id: UUID
    ticket_type_id: Optional[UUID] = None
    quantity: int
    ttl_minutes: Optional[int] = Field(default=None, gt=0)
    ttl_seconds: Optional[int] = Field(default=None, gt=0)  # Sub-minute holds; ttl_minutes wins

    @property
    def ttl(self) -> Optional[timedelta]:
        if self.ttl_minutes is not None:
            return timedelta(minutes=self.ttl_minutes)
        if self.ttl_seconds is not None:
            return timedelta(seconds=self.ttl_seconds)
        return None  # Configured default hold

    class Config:
        json_schema_extra = {
            'example': {
                'event_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',
                'quantity': 2,
                'ttl_minutes': 10,
            }
        }


class ReservationCreatedResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'reservation_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',
                'expires_at': '2025-01-10T10:40:00Z',
            }
        },
    }

    reservation_id: UUID
    expires_at: datetime


class TicketResponse(BaseModel):
    id: UUID
    event_id: UUID
    ticket_type_id: Optional[UUID] = None
    token: str
    status: str
    price_cents: int
    issued_at: datetime


class ReservationResponse(BaseModel):
    id: UUID
    event_id: UUID
    ticket_type_id: Optional[UUID] = None
    user_id: UUID
    quantity: int
    unit_price_cents: int
    total_price_cents: int
    status: str
    created_at: datetime
    expires_at: datetime
    consumed_at: Optional[datetime] = None
    released_at: Optional[datetime] = None
    tickets: List[TicketResponse] = []


class ReleaseResponse(BaseModel):
    reservation_id: UUID
    status: str
    released: bool


class SweepResponse(BaseModel):
    released: int
