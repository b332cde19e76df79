"""OpenTelemetry tracing for the content API.

Three exporters are available through ``OBSERVABILITY_CONFIG__EXPORTER_TYPE``:

- ``console``: finished spans become Loguru debug records (development)
- ``otlp``: spans are shipped to a collector over gRPC
- ``none``: spans are sampled and recorded but never exported

Store calls made by the orchestrator are wrapped in ``content.store.*``
spans via :func:`trace_operation`; failures inside them are recorded on the
span before being re-raised.
"""

from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Final

from loguru import logger
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Status, StatusCode

from src.core.context import RequestContext

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence

    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine

    from src.core.config import Settings

TRACER_NAME: Final[str] = "contentum"
DEFAULT_OTLP_ENDPOINT: Final[str] = "http://localhost:4317"
NANOSECONDS_PER_MILLISECOND: Final[int] = 1_000_000

# Resource attribute keys
SERVICE_NAME_KEY: Final[str] = "service.name"
SERVICE_VERSION_KEY: Final[str] = "service.version"
ENVIRONMENT_KEY: Final[str] = "deployment.environment"
API_PREFIX_KEY: Final[str] = "contentum.api_prefix"
STORE_BACKEND_KEY: Final[str] = "contentum.store_backend"


class LoguruSpanExporter(SpanExporter):
    """Writes each finished span as one Loguru debug record."""

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        for span in spans:
            span_context = span.get_span_context()
            if span_context is None:
                continue
            attributes = span.attributes or {}

            elapsed = None
            if span.start_time is not None and span.end_time is not None:
                elapsed = span.end_time - span.start_time
                elapsed //= NANOSECONDS_PER_MILLISECOND

            logger.bind(
                span_name=span.name,
                trace_id=f"0x{span_context.trace_id:032x}",
                span_id=f"0x{span_context.span_id:016x}",
                duration_ms=elapsed,
                span_status=span.status.status_code.name,
                **{f"span.{key}": value for key, value in attributes.items()},
            ).debug("Span {} finished", span.name)

        return SpanExportResult.SUCCESS


def get_span_exporter(settings: Settings) -> SpanExporter | None:
    """Build the exporter named by ``observability_config.exporter_type``.

    Returns:
        SpanExporter | None: The exporter, or None for ``none``.
    """
    config = settings.observability_config

    if config.exporter_type == "console":
        logger.info("Spans are exported through the application log")
        return LoguruSpanExporter()

    if config.exporter_type == "otlp":
        endpoint = config.exporter_endpoint or DEFAULT_OTLP_ENDPOINT
        logger.info("Spans are exported to OTLP collector {}", endpoint)
        # TLS is only skipped for local collectors
        return OTLPSpanExporter(
            endpoint=endpoint, insecure=settings.environment == "development"
        )

    logger.info("Span export disabled")
    return None


@lru_cache(maxsize=1)
def get_tracer(name: str = TRACER_NAME) -> trace.Tracer:
    """Return the tracer used for content API spans."""
    return trace.get_tracer(name)


def setup_tracing(settings: Settings) -> None:
    """Install a sampled global tracer provider when tracing is enabled."""
    config = settings.observability_config
    if not config.enable_tracing:
        logger.info("Tracing disabled by configuration")
        return

    resource = Resource.create(
        {
            SERVICE_NAME_KEY: settings.app_name,
            SERVICE_VERSION_KEY: settings.app_version,
            ENVIRONMENT_KEY: settings.environment,
            API_PREFIX_KEY: settings.content_api_config.api_prefix,
            STORE_BACKEND_KEY: settings.content_api_config.store_backend,
        }
    )
    # Children follow the caller's sampling decision
    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(config.trace_sample_rate)),
    )

    exporter = get_span_exporter(settings)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    logger.info(
        "Tracing enabled ({} exporter, sample rate {})",
        config.exporter_type,
        config.trace_sample_rate,
    )


def excluded_urls(settings: Settings) -> str:
    """Comma-separated paths the HTTP instrumentation must not trace."""
    paths = ["/health", settings.docs_url, settings.redoc_url, settings.openapi_url]
    return ",".join(path for path in paths if path)


def instrument_app(
    app: FastAPI, settings: Settings, engine: AsyncEngine | None = None
) -> None:
    """Trace incoming requests and, for the database backend, SQL statements.

    Args:
        app: FastAPI application to instrument.
        settings: Application settings.
        engine: Async engine behind the SQL stores; None for the memory backend.
    """
    if not settings.observability_config.enable_tracing:
        return

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls=excluded_urls(settings),
        server_request_hook=add_correlation_id_to_span,
    )
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)

    logger.info("Request tracing installed", sql_traced=engine is not None)


def add_correlation_id_to_span(span: trace.Span, scope: dict[str, Any]) -> None:
    """Server request hook tagging the span with the request's ids."""
    correlation_id = RequestContext.get_correlation_id()
    if correlation_id:
        span.set_attribute("correlation_id", correlation_id)

    for name, value in scope.get("headers", []):
        if name == b"x-request-id" and value:
            span.set_attribute("request_id", value.decode("latin-1"))
            break


@contextmanager
def trace_operation(
    name: str, **attributes: str | int | float | bool
) -> Generator[trace.Span]:
    """Run a block inside a child span carrying ``attributes``.

    Exceptions are recorded on the span, which is marked as failed, and then
    propagate unchanged.

    Example:
        >>> with trace_operation("content.store.delete", entry_id=entry_id):
        ...     deleted = await store.delete(entry_id)
    """
    with get_tracer().start_as_current_span(
        name, record_exception=False, set_status_on_exception=False
    ) as span:
        for key, value in attributes.items():
            span.set_attribute(key, str(value))
        request_id = RequestContext.get_request_id()
        if request_id:
            span.set_attribute("request_id", request_id)

        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
            raise
