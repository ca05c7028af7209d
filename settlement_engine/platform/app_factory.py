"""
Shared FastAPI App Factory

Provides common app setup for production and test environments.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from settlement_engine.platform.config.core_setting import settings
from settlement_engine.platform.exception.exception_handlers import register_exception_handlers
from settlement_engine.platform.observability.tracing import TracingConfig
from settlement_engine.service.reconciliation.driving_adapter.http_controller.reconciliation_controller import (
    router as reconciliation_router,
)
from settlement_engine.service.reservation.driving_adapter.http_controller.inventory_controller import (
    router as inventory_router,
)
from settlement_engine.service.reservation.driving_adapter.http_controller.reservation_controller import (
    router as reservation_router,
)
from settlement_engine.service.settlement.driving_adapter.http_controller.checkout_controller import (
    router as checkout_router,
)
from settlement_engine.service.settlement.driving_adapter.http_controller.settlement_webhook_controller import (
    router as settlement_router,
)


def create_app(
    *,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[Any]] | None = None,
    title_suffix: str = '',
    description: str = 'Ticket reservation and settlement engine',
) -> FastAPI:
    """
    Create a configured FastAPI application.

    Args:
        lifespan: Async context manager for app lifespan (startup/shutdown)
        title_suffix: Optional suffix for app title (e.g., " (Test)")
        description: App description

    Returns:
        Configured FastAPI application
    """
    title = f'{settings.PROJECT_NAME}{title_suffix}'

    app = FastAPI(
        title=title,
        description=description,
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # Auto-instrument FastAPI (must be done before mounting routes)
    tracing_config = TracingConfig()
    tracing_config.instrument_fastapi(app=app)

    app.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    register_exception_handlers(app)

    app.include_router(inventory_router, prefix='/api/inventory', tags=['inventory'])
    app.include_router(reservation_router, prefix='/api/reservation', tags=['reservation'])
    app.include_router(checkout_router, prefix='/api/checkout', tags=['checkout'])
    app.include_router(settlement_router, prefix='/api/settlement', tags=['settlement'])
    app.include_router(
        reconciliation_router, prefix='/api/reconciliation', tags=['reconciliation']
    )

    _register_common_endpoints(app)

    return app


def _register_common_endpoints(app: FastAPI) -> None:
    """Register health and metrics endpoints."""

    @app.get('/health')
    async def health_check() -> dict[str, str]:
        """Health check endpoint for container orchestration."""
        return {'status': 'healthy', 'service': 'Ticket Settlement Engine'}

    @app.get('/metrics')
    async def get_metrics() -> PlainTextResponse:
        """Prometheus metrics endpoint."""
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
