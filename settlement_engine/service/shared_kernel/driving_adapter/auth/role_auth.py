from typing import Optional
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from opentelemetry import trace

from settlement_engine.platform.config.core_setting import Settings
from settlement_engine.platform.config.di import Container
from settlement_engine.platform.exception.exceptions import ForbiddenError
from settlement_engine.service.shared_kernel.domain.current_user import CurrentUser
from settlement_engine.service.shared_kernel.driving_adapter.auth.jwt_auth import JwtAuth


bearer_scheme = HTTPBearer(auto_error=False)


class RoleAuthStrategy:
    @staticmethod
    def is_system(user: CurrentUser, *, system_roles: list[str]) -> bool:
        return user.role in system_roles


@inject
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth]),
) -> CurrentUser:
    """Stateless: the token carries everything, no DB query"""
    token = credentials.credentials if credentials else None
    return jwt_auth.get_current_user_from_jwt(token)


@inject
async def require_system(
    current_user: CurrentUser = Depends(get_current_user),
    config: Settings = Depends(Provide[Container.config_service]),
) -> CurrentUser:
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        'auth.require_system',
        attributes={'user.id': str(current_user.id), 'user.role': current_user.role},
    ):
        if not RoleAuthStrategy.is_system(current_user, system_roles=config.SYSTEM_ROLES):
            raise ForbiddenError('Only system callers can perform this action')
        return current_user


@inject
async def get_owner_scope(
    current_user: CurrentUser = Depends(get_current_user),
    config: Settings = Depends(Provide[Container.config_service]),
) -> Optional[UUID]:
    """User id that reads are restricted to; None for system callers, who see everything"""
    if RoleAuthStrategy.is_system(current_user, system_roles=config.SYSTEM_ROLES):
        return None
    return current_user.id
