"""
Test Configuration and Fixtures

This module provides:
- Environment setup before any application module reads settings
- A throwaway SQLite database per test (file-backed, so every session sees it)
- Unit of Work / ReservationManager fixtures wired like the DI container
- Seeding helpers for inventory and reservations

Architecture:
- Unit tests (test/**/unit/): mock the Unit of Work, never touch the database
- Integration tests: run the real repositories against SQLite
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are read at import time
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    os.environ['SWEEPER_ENABLED'] = 'false'
    os.environ['RECONCILIATION_ENABLED'] = 'false'
    os.environ.setdefault('SECRET_KEY', 'test_secret_key')
    os.environ['STRIPE_WEBHOOK_SECRET'] = 'whsec_test_secret'
    os.environ.setdefault('RECONCILIATION_REVENUE_TOLERANCE_CENTS', '0')


_early_setup_test_environment()

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
import hashlib  # noqa: E402
import hmac  # noqa: E402
import time  # noqa: E402
from typing import Any, Dict, List, Optional  # noqa: E402
from uuid import UUID  # noqa: E402

import pytest  # noqa: E402
from uuid_utils.compat import uuid7  # noqa: E402

from settlement_engine.platform.database.orm_db_setting import Database  # noqa: E402
from settlement_engine.platform.database.unit_of_work import (  # noqa: E402
    AbstractUnitOfWork,
    SqlAlchemyUnitOfWork,
)
from settlement_engine.platform.exception.exceptions import PaymentProviderError  # noqa: E402
from settlement_engine.service.reservation.app.command.initialize_inventory_use_case import (  # noqa: E402
    InitializeInventoryUseCase,
)
from settlement_engine.service.reservation.app.command.reserve_tickets_use_case import (  # noqa: E402
    ReserveTicketsUseCase,
)
from settlement_engine.service.reservation.app.reservation_manager import (  # noqa: E402
    ReservationManager,
)
from settlement_engine.service.reservation.domain.entity.inventory_entity import (  # noqa: E402
    Inventory,
)
from settlement_engine.service.reservation.domain.entity.reservation_entity import (  # noqa: E402
    Reservation,
)
from settlement_engine.service.settlement.app.dto.external_event_dto import (  # noqa: E402
    ProviderCheckoutSession,
)
from settlement_engine.service.settlement.app.interface.i_checkout_session_provider import (  # noqa: E402
    ICheckoutSessionProvider,
)


# =============================================================================
# Database
# =============================================================================
@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    db = Database(url=f'sqlite+aiosqlite:///{tmp_path / "settlement_test.db"}')
    await db.create_tables()
    yield db
    await db.dispose()


@pytest.fixture
def uow_factory(database: Database) -> Callable[[], AbstractUnitOfWork]:
    def factory() -> AbstractUnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory=database.session)

    return factory


@pytest.fixture
def reservation_manager() -> ReservationManager:
    return ReservationManager(default_ttl_minutes=10, max_ttl_minutes=60, max_quantity=10)


# =============================================================================
# Seeding helpers
# =============================================================================
@pytest.fixture
def event_id() -> UUID:
    return uuid7()


@pytest.fixture
def buyer_id() -> UUID:
    return uuid7()


@pytest.fixture
def another_buyer_id() -> UUID:
    return uuid7()


@pytest.fixture
def create_inventory(
    uow_factory: Callable[[], AbstractUnitOfWork],
) -> Callable[..., Awaitable[Inventory]]:
    use_case = InitializeInventoryUseCase(uow_factory=uow_factory)

    async def _create(
        *, event_id: UUID, total_capacity: int = 10, price_cents: int = 2500
    ) -> Inventory:
        return await use_case.execute(
            event_id=event_id, total_capacity=total_capacity, price_cents=price_cents
        )

    return _create


@pytest.fixture
def reserve(
    uow_factory: Callable[[], AbstractUnitOfWork],
    reservation_manager: ReservationManager,
) -> Callable[..., Awaitable[Reservation]]:
    use_case = ReserveTicketsUseCase(
        uow_factory=uow_factory, reservation_manager=reservation_manager
    )

    async def _reserve(
        *,
        event_id: UUID,
        user_id: UUID,
        quantity: int = 1,
        ttl: Optional[timedelta] = None,
    ) -> Reservation:
        return await use_case.execute(
            event_id=event_id, user_id=user_id, quantity=quantity, ttl=ttl
        )

    return _reserve


@pytest.fixture
def get_inventory(
    uow_factory: Callable[[], AbstractUnitOfWork],
) -> Callable[[UUID], Awaitable[Inventory]]:
    async def _get(event_id: UUID) -> Inventory:
        async with uow_factory() as uow:
            inventory = await uow.inventory_repo.get_by_event_and_type(
                event_id=event_id, ticket_type_id=None
            )
        assert inventory is not None
        return inventory

    return _get


@pytest.fixture
def get_reservation(
    uow_factory: Callable[[], AbstractUnitOfWork],
) -> Callable[[UUID], Awaitable[Reservation]]:
    async def _get(reservation_id: UUID) -> Reservation:
        async with uow_factory() as uow:
            reservation = await uow.reservation_repo.get_by_id(reservation_id=reservation_id)
        assert reservation is not None
        return reservation

    return _get


# =============================================================================
# Payment provider doubles
# =============================================================================
TEST_WEBHOOK_SECRET = 'whsec_test_secret'


class FakeCheckoutSessionProvider(ICheckoutSessionProvider):
    """In-memory hosted checkout; sessions stay open until expired or completed"""

    def __init__(self) -> None:
        self.sessions: Dict[str, ProviderCheckoutSession] = {}
        self.created: List[Dict[str, Any]] = []
        self.expired: List[str] = []
        self.by_idempotency_key: Dict[str, Any] = {}

    async def create_session(
        self,
        *,
        client_reference_id: str,
        line_item_name: str,
        unit_amount_cents: int,
        quantity: int,
        success_url: str,
        cancel_url: str,
        expires_at: datetime,
        metadata: Dict[str, str],
        idempotency_key: str,
    ) -> ProviderCheckoutSession:
        # Provider replays a key only for identical parameters (timestamps in whole seconds)
        params = (
            client_reference_id,
            unit_amount_cents,
            quantity,
            int(expires_at.timestamp()),
            tuple(sorted(metadata.items())),
        )
        if idempotency_key in self.by_idempotency_key:
            replayed_params, replayed = self.by_idempotency_key[idempotency_key]
            if replayed_params != params:
                raise PaymentProviderError(
                    'Keys for idempotent requests can only be used with the same parameters'
                )
            return replayed
        session_id = f'cs_test_{len(self.created) + 1}'
        self.created.append(
            {
                'id': session_id,
                'client_reference_id': client_reference_id,
                'unit_amount_cents': unit_amount_cents,
                'quantity': quantity,
                'expires_at': expires_at,
                'metadata': metadata,
                'idempotency_key': idempotency_key,
            }
        )
        session = ProviderCheckoutSession(
            id=session_id,
            url=f'https://checkout.stripe.test/{session_id}',
            status='open',
            expires_at=expires_at,
        )
        self.sessions[session_id] = session
        self.by_idempotency_key[idempotency_key] = (params, session)
        return session

    async def retrieve_session(self, *, session_id: str) -> ProviderCheckoutSession:
        return self.sessions[session_id]

    async def expire_session(self, *, session_id: str) -> None:
        self.expired.append(session_id)
        session = self.sessions[session_id]
        self.sessions[session_id] = ProviderCheckoutSession(
            id=session.id, url=None, status='expired', expires_at=session.expires_at
        )

    def complete(self, session_id: str) -> None:
        session = self.sessions[session_id]
        self.sessions[session_id] = ProviderCheckoutSession(
            id=session.id, url=None, status='complete', expires_at=session.expires_at
        )


@pytest.fixture
def fake_checkout_provider() -> FakeCheckoutSessionProvider:
    return FakeCheckoutSessionProvider()


@pytest.fixture
def sign_webhook() -> Callable[..., str]:
    """Build a Stripe-Signature header: t=<timestamp>,v1=<HMAC-SHA256 of "t.payload">"""

    def _sign(
        payload: bytes, *, secret: str = TEST_WEBHOOK_SECRET, timestamp: Optional[int] = None
    ) -> str:
        timestamp = int(time.time()) if timestamp is None else timestamp
        signed = f'{timestamp}.'.encode() + payload
        digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
        return f't={timestamp},v1={digest}'

    return _sign


@pytest.fixture
def checkout_session_event() -> Callable[..., Dict[str, Any]]:
    """Provider event envelope for a checkout session"""

    def _build(
        *,
        event_type: str,
        session_id: str,
        reservation_id: UUID,
        amount_total: int,
        event_id: Optional[str] = None,
        payment_intent: Optional[str] = 'pi_test_1',
        payment_status: str = 'paid',
    ) -> Dict[str, Any]:
        return {
            'id': event_id or f'evt_{uuid7().hex}',
            'object': 'event',
            'type': event_type,
            'created': int(datetime.now(timezone.utc).timestamp()),
            'data': {
                'object': {
                    'id': session_id,
                    'object': 'checkout.session',
                    'client_reference_id': str(reservation_id),
                    'payment_intent': payment_intent,
                    'payment_status': payment_status,
                    'amount_total': amount_total,
                    'currency': 'usd',
                    'metadata': {'reservation_id': str(reservation_id)},
                }
            },
        }

    return _build
