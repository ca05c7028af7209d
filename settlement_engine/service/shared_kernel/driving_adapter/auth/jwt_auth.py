"""
Bearer token verification

Tokens are minted by the external identity service with a shared secret;
this service only verifies them and never touches a user table.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from uuid import UUID

import jwt

from settlement_engine.platform.config.core_setting import settings
from settlement_engine.platform.exception.exceptions import AuthenticationError
from settlement_engine.service.shared_kernel.domain.current_user import CurrentUser


class JwtAuth:
    def __init__(self, *, secret: Optional[str] = None, algorithm: Optional[str] = None) -> None:
        self.secret = secret or settings.SECRET_KEY.get_secret_value()
        self.algorithm = algorithm or settings.ALGORITHM
        self.token_expire_days = 7

    def create_jwt_token(self, *, user_id: UUID, role: str = 'user') -> str:
        """Used by local tooling and tests; production tokens come from the identity service."""
        now = datetime.now(timezone.utc)
        payload = {
            'sub': str(user_id),
            'role': role,
            'iat': now,
            'exp': now + timedelta(days=self.token_expire_days),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError:
            raise AuthenticationError('Invalid token')

    def get_current_user_from_jwt(self, token: Optional[str]) -> CurrentUser:
        if not token:
            raise AuthenticationError('Not authenticated')

        payload = self.decode_jwt_token(token)
        subject = payload.get('sub')
        if not subject:
            raise AuthenticationError('Invalid token')

        try:
            user_id = UUID(str(subject))
        except ValueError:
            raise AuthenticationError('Invalid token')

        return CurrentUser(id=user_id, role=str(payload.get('role') or 'user'))
