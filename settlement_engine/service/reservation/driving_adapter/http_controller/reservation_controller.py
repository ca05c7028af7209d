from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from opentelemetry import trace

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reservation.app.command.consume_reservation_use_case import (
    ConsumeReservationUseCase,
)
from settlement_engine.service.reservation.app.command.expire_reservations_use_case import (
    ExpireReservationsUseCase,
)
from settlement_engine.service.reservation.app.command.release_reservation_use_case import (
    ReleaseReservationUseCase,
)
from settlement_engine.service.reservation.app.command.reserve_tickets_use_case import (
    ReserveTicketsUseCase,
)
from settlement_engine.service.reservation.app.query.get_reservation_use_case import (
    GetReservationUseCase,
)
from settlement_engine.service.reservation.domain.entity.ticket_entity import Ticket
from settlement_engine.service.reservation.domain.enum.reservation_status import (
    ReservationStatus,
)
from settlement_engine.service.reservation.driving_adapter.http_controller.schema.reservation_schema import (
    ReleaseResponse,
    ReservationCreatedResponse,
    ReservationCreateRequest,
    ReservationResponse,
    SweepResponse,
    TicketResponse,
)
from settlement_engine.service.shared_kernel.domain.current_user import CurrentUser
from settlement_engine.service.shared_kernel.driving_adapter.auth.role_auth import (
    get_current_user,
    get_owner_scope,
    require_system,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


def _ticket_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse(
        id=ticket.id,
        event_id=ticket.event_id,
        ticket_type_id=ticket.ticket_type_id,
        token=ticket.token,
        status=ticket.status.value,
        price_cents=ticket.price_cents,
        issued_at=ticket.issued_at,
    )


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
async def reserve_tickets(
    request: ReservationCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    use_case: ReserveTicketsUseCase = Depends(ReserveTicketsUseCase.depends),
) -> ReservationCreatedResponse:
    with tracer.start_as_current_span('controller.reserve_tickets') as span:
        span.set_attribute('event_id', str(request.event_id))
        span.set_attribute('user_id', str(current_user.id))

        reservation = await use_case.execute(
            event_id=request.event_id,
            ticket_type_id=request.ticket_type_id,
            user_id=current_user.id,
            quantity=request.quantity,
            ttl=request.ttl,
        )
        return ReservationCreatedResponse(
            reservation_id=reservation.id, expires_at=reservation.expires_at
        )


# Must stay above /{reservation_id}
@router.post('/sweep')
@Logger.io
async def sweep_expired_reservations(
    current_user: CurrentUser = Depends(require_system),
    use_case: ExpireReservationsUseCase = Depends(ExpireReservationsUseCase.depends),
) -> SweepResponse:
    released = await use_case.execute()
    return SweepResponse(released=released)


@router.get('/{reservation_id}')
@Logger.io
async def get_reservation(
    reservation_id: UUID,
    owner_id: Optional[UUID] = Depends(get_owner_scope),
    use_case: GetReservationUseCase = Depends(GetReservationUseCase.depends),
) -> ReservationResponse:
    detail = await use_case.execute(reservation_id=reservation_id, user_id=owner_id)
    reservation = detail.reservation
    return ReservationResponse(
        id=reservation.id,
        event_id=reservation.event_id,
        ticket_type_id=reservation.ticket_type_id,
        user_id=reservation.user_id,
        quantity=reservation.quantity,
        unit_price_cents=reservation.unit_price_cents,
        total_price_cents=reservation.total_price_cents,
        status=reservation.status.value,
        created_at=reservation.created_at,
        expires_at=reservation.expires_at,
        consumed_at=reservation.consumed_at,
        released_at=reservation.released_at,
        tickets=[_ticket_response(ticket) for ticket in detail.tickets],
    )


@router.get('/{reservation_id}/tickets')
@Logger.io
async def list_reservation_tickets(
    reservation_id: UUID,
    owner_id: Optional[UUID] = Depends(get_owner_scope),
    use_case: GetReservationUseCase = Depends(GetReservationUseCase.depends),
) -> List[TicketResponse]:
    detail = await use_case.execute(reservation_id=reservation_id, user_id=owner_id)
    return [_ticket_response(ticket) for ticket in detail.tickets]


@router.post('/{reservation_id}/release')
@Logger.io
async def release_reservation(
    reservation_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    use_case: ReleaseReservationUseCase = Depends(ReleaseReservationUseCase.depends),
) -> ReleaseResponse:
    result = await use_case.execute(
        reservation_id=reservation_id,
        status=ReservationStatus.CANCELLED,
        user_id=current_user.id,
    )
    return ReleaseResponse(
        reservation_id=result.reservation.id,
        status=result.reservation.status.value,
        released=result.released,
    )


@router.post('/{reservation_id}/consume')
@Logger.io
async def consume_reservation(
    reservation_id: UUID,
    current_user: CurrentUser = Depends(require_system),
    use_case: ConsumeReservationUseCase = Depends(ConsumeReservationUseCase.depends),
) -> List[TicketResponse]:
    """Settle a hold paid outside hosted checkout (box office, comps)"""
    tickets = await use_case.execute(reservation_id=reservation_id)
    return [_ticket_response(ticket) for ticket in tickets]
