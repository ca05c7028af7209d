"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from dependency_injector import containers, providers

from settlement_engine.platform.config.core_setting import Settings
from settlement_engine.platform.database.orm_db_setting import Database
from settlement_engine.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from settlement_engine.service.reservation.app.reservation_manager import ReservationManager
from settlement_engine.service.settlement.driven_adapter.payment_provider.stripe_checkout_session_provider import (
    StripeCheckoutSessionProvider,
)
from settlement_engine.service.settlement.driven_adapter.payment_provider.stripe_webhook_verifier import (
    StripeWebhookVerifier,
)
from settlement_engine.service.shared_kernel.driving_adapter.auth.jwt_auth import JwtAuth


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Database (engine manager is event-loop aware)
    database = providers.Singleton(Database, url=config_service.provided.DATABASE_URL_ASYNC)

    # Unit of Work: a fresh session/transaction per logical operation.
    # Use cases receive the provider itself (Provide[Container.unit_of_work.provider]).
    unit_of_work = providers.Factory(
        SqlAlchemyUnitOfWork,
        session_factory=database.provided.session,
    )

    # Reservation Manager (stateless, only writer of the inventory/reservation ledgers)
    reservation_manager = providers.Singleton(
        ReservationManager,
        default_ttl_minutes=config_service.provided.RESERVATION_DEFAULT_TTL_MINUTES,
        max_ttl_minutes=config_service.provided.RESERVATION_MAX_TTL_MINUTES,
        max_quantity=config_service.provided.MAX_TICKETS_PER_RESERVATION,
    )

    # Payment provider (Stripe)
    checkout_session_provider = providers.Singleton(
        StripeCheckoutSessionProvider,
        api_key=config_service.provided.STRIPE_SECRET_KEY.get_secret_value.call(),
        currency=config_service.provided.STRIPE_CURRENCY,
    )
    webhook_verifier = providers.Singleton(
        StripeWebhookVerifier,
        webhook_secret=config_service.provided.STRIPE_WEBHOOK_SECRET.get_secret_value.call(),
        tolerance_seconds=config_service.provided.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )

    # Auth service
    jwt_auth = providers.Singleton(
        JwtAuth,
        secret=config_service.provided.SECRET_KEY.get_secret_value.call(),
        algorithm=config_service.provided.ALGORITHM,
    )


container = Container()
