"""
HTTP mapping for domain and infrastructure errors

- CustomBaseError subclasses carry their own status code
- InsufficientInventoryError also reports how many tickets are left
- Lost database connections surface as 503 so callers retry
- Anything else is a 500 with a generic body
"""

from typing import Any, Callable, Coroutine

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.responses import Response

from settlement_engine.platform.exception.exceptions import (
    CustomBaseError,
    InsufficientInventoryError,
    InventoryInvariantViolation,
)
from settlement_engine.platform.logging.loguru_io import Logger


ExceptionHandler = Callable[[Request, Exception], Coroutine[Any, Any, Response]]


def _route(request: Request) -> str:
    return f'{request.method} {request.url.path}'


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, CustomBaseError) else CustomBaseError(str(exc))
    if isinstance(error, InventoryInvariantViolation):
        Logger.base.critical(f'🚨 [INVENTORY] Invariant violated on {_route(request)}: {error}')
    return JSONResponse(status_code=error.status_code, content={'detail': error.message})


async def insufficient_inventory_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, InsufficientInventoryError):
        return await domain_error_handler(request, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={'detail': exc.message, 'available': max(exc.available, 0)},
    )


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={'detail': errors})


async def value_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={'detail': str(exc)})


async def database_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    Logger.base.warning(f'🗄️ [DB] {type(exc).__name__} on {_route(request)}, asking client to retry')
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={'detail': 'Temporarily unavailable, retry later'},
        headers={'Retry-After': '5'},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not getattr(exc, '_has_logged', False):
        Logger.base.opt(exception=exc).error(
            f'💥 [HTTP] Unhandled {type(exc).__name__} on {_route(request)}'
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'detail': 'Internal server error'},
    )


EXCEPTION_HANDLERS: dict[type[Exception], ExceptionHandler] = {
    InsufficientInventoryError: insufficient_inventory_handler,
    CustomBaseError: domain_error_handler,
    RequestValidationError: request_validation_handler,
    ValueError: value_error_handler,
    OperationalError: database_unavailable_handler,
    InterfaceError: database_unavailable_handler,
    Exception: unhandled_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
