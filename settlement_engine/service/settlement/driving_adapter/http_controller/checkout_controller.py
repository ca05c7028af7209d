from fastapi import APIRouter, Depends

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.settlement.app.command.create_checkout_use_case import (
    CreateCheckoutUseCase,
)
from settlement_engine.service.settlement.driving_adapter.http_controller.schema.settlement_schema import (
    CheckoutCreateRequest,
    CheckoutResponse,
)
from settlement_engine.service.shared_kernel.domain.current_user import CurrentUser
from settlement_engine.service.shared_kernel.driving_adapter.auth.role_auth import (
    get_current_user,
)


router = APIRouter()


@router.post('')
@Logger.io
async def create_checkout(
    request: CheckoutCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    use_case: CreateCheckoutUseCase = Depends(CreateCheckoutUseCase.depends),
) -> CheckoutResponse:
    result = await use_case.execute(
        reservation_id=request.reservation_id,
        user_id=current_user.id,
        success_url=request.success_url,
        cancel_url=request.cancel_url,
    )
    return CheckoutResponse(
        checkout_url=result.checkout_url,
        session_id=result.session_id,
        expires_at=result.expires_at,
    )
