"""
Loguru sink configuration

Every line carries the replica (`service_context`), the OpenTelemetry trace
id of the request or job that produced it, and for @Logger.io calls the
decorated function and the elapsed time of the whole call chain.

Standard-library loggers (uvicorn, sqlalchemy, stripe, aiosqlite) are routed
through the same sinks by InterceptHandler.
"""

from contextvars import ContextVar
from datetime import datetime, timezone
from enum import StrEnum
import logging
import os
import sys
from typing import TYPE_CHECKING, Any

from loguru import logger as loguru_logger
from opentelemetry import trace


if TYPE_CHECKING:
    from loguru import Logger as LoguruLogger, Record

from settlement_engine.platform.config.core_setting import settings
from settlement_engine.platform.constant.path import LOG_DIR
from settlement_engine.platform.logging.service_context import get_service_context


LOG_DIR = os.environ.get('TEST_LOG_DIR', LOG_DIR)

# Argument names whose values never reach a log line
SENSITIVE_KEYWORDS = {
    'password',
    'token',
    'secret',
    'signature',
    'authorization',
    'api_key',
}

# Minimum level per third-party logger prefix
NOISY_LOGGERS: dict[str, int] = {
    'aiosqlite': logging.INFO,
    'stripe': logging.INFO,
    'asyncio': logging.INFO,
    'sqlalchemy.engine': logging.WARNING,
}

chain_start_time_var: ContextVar[float] = ContextVar('chain_start_time_var', default=0)
call_depth_var: ContextVar[int] = ContextVar('call_depth_var', default=0)


class ExtraField(StrEnum):
    SERVICE_CONTEXT = 'service_context'
    TRACE_ID = 'trace_id'
    CHAIN_START_TIME = 'chain_start_time'
    CALL_TARGET = 'call_target'


def _current_trace_id() -> str:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return '-'
    return format(span_context.trace_id, '032x')


def _attach_trace_id(record: 'Record') -> None:
    record['extra'][ExtraField.TRACE_ID] = _current_trace_id()


def _http_status_level(message: str) -> str | None:
    """
    Level for a uvicorn access line, by response status.

    '127.0.0.1:51234 - "POST /api/settlement/webhook HTTP/1.1" 200'
    """
    if ' - "' not in message or ' HTTP/' not in message:
        return None

    parts = message.split('"')
    if len(parts) < 3:
        return None
    status_tokens = [token for token in parts[2].split() if token.isdigit()]
    if not status_tokens:
        return None

    status_code = int(status_tokens[0])
    if status_code >= 500:
        return 'CRITICAL'
    if status_code >= 400:
        return 'WARNING'
    return 'INFO'


def _is_noisy(record: logging.LogRecord) -> bool:
    for prefix, min_level in NOISY_LOGGERS.items():
        if record.name.startswith(prefix):
            return record.levelno < min_level
    return False


def _default_extra() -> dict[str, Any]:
    return {
        ExtraField.SERVICE_CONTEXT: get_service_context(),
        ExtraField.TRACE_ID: '-',
        ExtraField.CHAIN_START_TIME: '',
        ExtraField.CALL_TARGET: '',
    }


class InterceptHandler(logging.Handler):
    """Forward standard-library records to loguru, keeping the original caller."""

    def __init__(self, bound_logger: 'LoguruLogger') -> None:
        super().__init__()
        self.bound_logger = bound_logger

    def emit(self, record: logging.LogRecord) -> None:
        if _is_noisy(record):
            return

        message = record.getMessage()
        level: str | int | None = _http_status_level(message)
        if level is None:
            try:
                level = loguru_logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore
            depth += 1

        self.bound_logger.opt(depth=depth, exception=record.exc_info).log(level, message)


io_log_format = ' | '.join(
    (
        f'<c>{{extra[{ExtraField.SERVICE_CONTEXT}]}}</>',
        '<lvl>{level:<8}</>',
        f'<m>{{extra[{ExtraField.TRACE_ID}]:.8}}</>',
        f'<c>{{file}}::{{function}}:{{line}}</>=><y>{{extra[{ExtraField.CALL_TARGET}]}}</>',
        '{message}',
        '<lk>{elapsed}</>',
        f'<lk>{{extra[{ExtraField.CHAIN_START_TIME}]:<18}}</>',
    )
)


def _log_file_path() -> str:
    hour = datetime.now(timezone.utc).strftime('%Y-%m-%d_%H')
    prefix = 'test_' if os.environ.get('TEST_LOG_DIR') else ''
    return f'{LOG_DIR}/{prefix}{hour}.log'


def configure_logging() -> 'LoguruLogger':
    """Replace loguru's default sink and return the bound application logger."""
    level = settings.LOG_LEVEL or ('DEBUG' if settings.DEBUG else 'INFO')

    loguru_logger.remove()
    loguru_logger.configure(patcher=_attach_trace_id)
    bound = loguru_logger.bind(**_default_extra())

    if settings.LOG_JSON:
        bound.add(sys.stdout, level=level, serialize=True, enqueue=True)
    else:
        bound.add(sys.stdout, format=io_log_format, level=level, enqueue=True)

    # Local runs keep hourly files; deployed replicas only write stdout
    if settings.DEBUG:
        bound.add(
            _log_file_path(),
            format=io_log_format,
            rotation='1 hour',
            retention='7 days',
            compression='gz',
            enqueue=True,
            level=level,
        )

    logging.basicConfig(handlers=[InterceptHandler(bound)], level=0, force=True)
    return bound


custom_logger = configure_logging()
