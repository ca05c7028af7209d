"""
Production FastAPI Application

Reservation, checkout and settlement API plus the expiration sweeper and
reconciliation scheduler running as background tasks.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from settlement_engine.platform.app_factory import create_app
from settlement_engine.platform.config.di import container
from settlement_engine.platform.config.wire_modules import WIRE_MODULES
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.platform.observability.tracing import TracingConfig
from settlement_engine.service.reconciliation.app.command.reconcile_due_use_case import (
    ReconcileDueUseCase,
)
from settlement_engine.service.reconciliation.app.command.reconcile_event_use_case import (
    ReconcileEventUseCase,
)
from settlement_engine.service.reconciliation.driving_adapter.scheduler.reconciliation_scheduler import (
    ReconciliationScheduler,
)
from settlement_engine.service.reservation.app.command.expire_reservations_use_case import (
    ExpireReservationsUseCase,
)
from settlement_engine.service.reservation.driving_adapter.scheduler.expiration_sweeper import (
    ExpirationSweeper,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Settlement Engine] Starting up...')
    config = container.config_service()

    tracing = TracingConfig(config=config)
    tracing.setup()
    Logger.base.info('📊 [Settlement Engine] OpenTelemetry tracing configured')

    # Wire dependency injection for all modules
    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Settlement Engine] Dependency injection wired')

    database = container.database()
    tracing.instrument_sqlalchemy(engine=database.engine)
    if config.DATABASE_URL_ASYNC.startswith('sqlite'):
        await database.create_tables()
        Logger.base.info('🗄️  [Settlement Engine] SQLite schema ensured')
    Logger.base.info('🗄️  [Settlement Engine] Database engine ready + instrumented')

    async with anyio.create_task_group() as tg:
        if config.SWEEPER_ENABLED:
            sweeper = ExpirationSweeper(
                use_case=ExpireReservationsUseCase(
                    uow_factory=container.unit_of_work,
                    reservation_manager=container.reservation_manager(),
                    batch_size=config.SWEEPER_BATCH_SIZE,
                ),
                interval_seconds=config.SWEEPER_INTERVAL_SECONDS,
            )
            await sweeper.start(task_group=tg)

        if config.RECONCILIATION_ENABLED:
            scheduler = ReconciliationScheduler(
                use_case=ReconcileDueUseCase(
                    uow_factory=container.unit_of_work,
                    reconcile_event_use_case=ReconcileEventUseCase(
                        uow_factory=container.unit_of_work,
                        revenue_tolerance_cents=config.RECONCILIATION_REVENUE_TOLERANCE_CENTS,
                    ),
                ),
                interval_seconds=config.RECONCILIATION_INTERVAL_SECONDS,
                hours_ago=config.RECONCILIATION_HOURS_AGO,
            )
            await scheduler.start(task_group=tg)

        Logger.base.info('✅ [Settlement Engine] Ready to serve requests')

        yield

        Logger.base.info('🛑 [Settlement Engine] Shutting down...')
        tg.cancel_scope.cancel()

    await database.dispose()
    Logger.base.info('🗄️  [Settlement Engine] Database engine disposed')

    # Shutdown tracing (flush remaining spans)
    tracing.shutdown()
    Logger.base.info('📊 [Settlement Engine] Tracing shutdown complete')

    container.unwire()
    Logger.base.info('👋 [Settlement Engine] Shutdown complete')


app = create_app(
    lifespan=lifespan,
    description='Atomic ticket reservation, hosted checkout and idempotent payment settlement',
)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
