from uuid import UUID

import attrs


@attrs.define(frozen=True)
class CurrentUser:
    """Caller identity as asserted by the identity service's token"""

    id: UUID
    role: str = 'user'
