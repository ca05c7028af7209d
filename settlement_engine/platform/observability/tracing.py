"""
OpenTelemetry tracing for the settlement engine

Spans worth looking at:
- reservation.reserve / reservation.consume: row-lock hold time
- settlement.webhook.*: one span per provider delivery, tagged with the outcome
- reconciliation.event: per-event audit

Exporters are chosen from settings: OTLP when an endpoint is configured,
console output when OTEL_CONSOLE_EXPORT is on, nothing otherwise.
"""

from typing import Any, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Span, Status, StatusCode

from settlement_engine.platform.config.core_setting import Settings, settings


class TracingConfig:
    def __init__(self, *, config: Optional[Settings] = None) -> None:
        self.config = config or settings
        self._provider: TracerProvider | None = None

    @property
    def is_exporting(self) -> bool:
        return bool(self.config.OTEL_EXPORTER_OTLP_ENDPOINT) or self.config.OTEL_CONSOLE_EXPORT

    def setup(self) -> None:
        """Install the global tracer provider; call once at startup."""
        resource = Resource(
            attributes={
                SERVICE_NAME: self.config.SERVICE_NAME,
                SERVICE_VERSION: self.config.VERSION,
                DEPLOYMENT_ENVIRONMENT: self.config.DEPLOY_ENV,
            }
        )
        ratio = min(max(self.config.OTEL_SAMPLE_RATIO, 0.0), 1.0)
        self._provider = TracerProvider(
            resource=resource, sampler=ParentBased(TraceIdRatioBased(ratio))
        )

        if self.config.OTEL_EXPORTER_OTLP_ENDPOINT:
            exporter = OTLPSpanExporter(endpoint=self.config.OTEL_EXPORTER_OTLP_ENDPOINT)
            self._provider.add_span_processor(BatchSpanProcessor(exporter))

        if self.config.OTEL_CONSOLE_EXPORT:
            self._provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(self._provider)

    def instrument_fastapi(self, *, app: Any, excluded_urls: str = 'health,metrics') -> None:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=excluded_urls)

    def instrument_sqlalchemy(self, *, engine: Any) -> None:
        # AsyncEngine is instrumented through its sync facade
        sync_engine = getattr(engine, 'sync_engine', engine)
        SQLAlchemyInstrumentor().instrument(engine=sync_engine)

    def shutdown(self) -> None:
        if self._provider:
            self._provider.shutdown()


def record_span_error(span: Span, exc: BaseException) -> None:
    span.record_exception(exc)
    span.set_status(Status(StatusCode.ERROR, str(exc)))
