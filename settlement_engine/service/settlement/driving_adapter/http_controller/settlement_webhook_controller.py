"""
Stripe webhook endpoint

Status codes drive the provider's redelivery:
- 400: signature missing or invalid
- 503: database unavailable; the event was not recorded and must be redelivered
- 200: everything else, including duplicates and events we cannot use
"""

from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Header, Request
from opentelemetry import trace
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from settlement_engine.platform.config.di import Container
from settlement_engine.platform.exception.exceptions import (
    MalformedExternalEventError,
    ServiceUnavailableError,
)
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.platform.metrics.settlement_metrics import metrics
from settlement_engine.platform.observability.tracing import record_span_error
from settlement_engine.service.settlement.app.command.handle_external_event_use_case import (
    HandleExternalEventUseCase,
)
from settlement_engine.service.settlement.app.interface.i_webhook_verifier import IWebhookVerifier
from settlement_engine.service.settlement.domain.enum.webhook_outcome import WebhookOutcome
from settlement_engine.service.settlement.driving_adapter.http_controller.schema.settlement_schema import (
    WebhookAckResponse,
)


router = APIRouter()

TRANSIENT_DB_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, TimeoutError)


def is_transient_db_error(exc: BaseException) -> bool:
    if isinstance(exc, TRANSIENT_DB_ERRORS):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


@router.post('/webhook')
@inject
async def handle_stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias='Stripe-Signature'),
    verifier: IWebhookVerifier = Depends(Provide[Container.webhook_verifier]),
    use_case: HandleExternalEventUseCase = Depends(HandleExternalEventUseCase.depends),
) -> WebhookAckResponse:
    payload = await request.body()

    try:
        event = verifier.verify(payload=payload, signature=stripe_signature)
    except MalformedExternalEventError as e:
        # No event id to record it under; acknowledged
        Logger.base.warning(f'⚠️ [WEBHOOK] Unusable event body: {e.message}')
        metrics.record_webhook_event(event_type='unknown', outcome=WebhookOutcome.MALFORMED.value)
        return WebhookAckResponse(outcome=WebhookOutcome.MALFORMED.value)

    try:
        result = await use_case.execute(event=event)
    except Exception as e:
        if is_transient_db_error(e):
            Logger.base.warning(f'🔌 [WEBHOOK] {event.id} deferred, database unavailable: {e}')
            raise ServiceUnavailableError('Temporarily unavailable, retry later') from e

        record_span_error(trace.get_current_span(), e)
        if not getattr(e, '_has_logged', False):
            Logger.base.opt(exception=e).error(
                f'💥 [WEBHOOK] {event.id} ({event.type}) failed and was rolled back'
            )
        metrics.record_webhook_event(event_type=event.type, outcome=WebhookOutcome.ERROR.value)
        return WebhookAckResponse(outcome=WebhookOutcome.ERROR.value)

    return WebhookAckResponse(outcome=result.outcome.value, reservation_id=result.reservation_id)
