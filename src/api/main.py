"""HTTP surface of the Contentum content API.

:func:`create_app` picks the store backend, builds the
:class:`~src.content.service.ContentService` and mounts one catch-all route
under ``content_api_config.api_prefix``. That route turns the Starlette
request into an ``ApiRequest`` and renders the returned envelope verbatim;
routing, validation and the auth, CORS and rate limit middleware all live
in the content service. Around it sit the request context and security
headers middleware, the exception handlers that keep framework errors in
envelope form, and the ``/health`` and ``/info`` endpoints.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import orjson
from fastapi import FastAPI, Request, Response
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import QueuePool

from src.api.constants import (
    CONTENT_API_METHODS,
    INVALID_JSON_MESSAGE,
    PREFLIGHT_MAX_AGE,
)
from src.api.dependencies import AppSettingsDep, ContentServiceDep
from src.api.middleware.error_handler import register_exception_handlers
from src.api.middleware.request_context import RequestContextMiddleware
from src.api.middleware.security_headers import SecurityHeadersMiddleware
from src.api.utils.responses import ORJSONResponse, envelope_response
from src.content.models import ApiRequest
from src.content.protocols import EntryStore
from src.content.service import ContentService
from src.core.config import ContentApiConfig, Settings, get_settings
from src.core.exceptions import BadRequestError
from src.core.logging import setup_logging
from src.core.observability import instrument_app, setup_tracing
from src.infrastructure.database.session import (
    check_database_connection,
    close_database,
    create_tables,
    get_engine,
    get_session_factory,
)
from src.infrastructure.database.stores import SqlContentTypeRegistry, SqlEntryStore
from src.infrastructure.memory import InMemoryContentTypeRegistry, InMemoryEntryStore
from src.infrastructure.seed import WritableRegistry, seed_registry


def build_stores(
    settings: Settings,
) -> tuple[WritableRegistry, EntryStore, AsyncEngine | None]:
    """Create the registry and entry store for the configured backend.

    Returns:
        tuple: Registry, entry store and the SQL engine (None in memory).
    """
    if settings.content_api_config.store_backend == "database":
        session_factory = get_session_factory()
        return (
            SqlContentTypeRegistry(session_factory),
            SqlEntryStore(session_factory),
            get_engine(),
        )
    return InMemoryContentTypeRegistry(), InMemoryEntryStore(), None


async def build_api_request(request: Request) -> ApiRequest:
    """Translate a Starlette request into the content pipeline's request.

    Raises:
        BadRequestError: The body is present but is not valid JSON.
    """
    raw_body = await request.body()
    body = None
    if raw_body.strip():
        try:
            body = orjson.loads(raw_body)
        except orjson.JSONDecodeError as e:
            raise BadRequestError(INVALID_JSON_MESSAGE, cause=e) from e

    return ApiRequest(
        method=request.method,
        path=request.url.path,
        query=dict(request.query_params),
        body=body,
        headers=dict(request.headers),
        client=request.client.host if request.client else None,
    )


def preflight_headers(config: ContentApiConfig) -> dict[str, str]:
    """Headers answering a CORS preflight request."""
    headers = {"Access-Control-Max-Age": PREFLIGHT_MAX_AGE}
    if config.cors_enabled:
        headers |= {
            "Access-Control-Allow-Origin": config.cors_allow_origin,
            "Access-Control-Allow-Methods": config.cors_allow_methods,
            "Access-Control-Allow-Headers": config.cors_allow_headers,
        }
    return headers


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Prepare the stores before serving and release them afterwards.

    The database backend must answer before startup continues; its tables are
    created when configured. Content type definitions from
    ``content_types_file`` are then seeded into the registry.

    Raises:
        RuntimeError: The database is unreachable.
        StoreError: The content type definitions cannot be loaded.
    """
    settings: Settings = app_instance.state.settings
    engine: AsyncEngine | None = app_instance.state.engine

    if engine is not None:
        is_healthy, error_msg = await check_database_connection(engine)
        if not is_healthy:
            msg = f"Content database unreachable: {error_msg}"
            logger.error(msg)
            raise RuntimeError(msg)
        logger.info("Content database reachable")

        if settings.database_config.create_tables:
            await create_tables(engine)

    content_types_file = settings.content_api_config.content_types_file
    if content_types_file is not None:
        await seed_registry(app_instance.state.registry, content_types_file)

    logger.info(
        "{} v{} serving content under {}",
        app_instance.title,
        app_instance.version,
        settings.content_api_config.api_prefix,
        store_backend=settings.content_api_config.store_backend,
    )

    yield

    if engine is not None:
        await close_database()
    logger.info("{} stopped", app_instance.title)


def create_app(
    settings: Settings | None = None,
    registry: WritableRegistry | None = None,
    store: EntryStore | None = None,
) -> FastAPI:
    """Assemble the content API application.

    Args:
        settings: Settings to use; ``get_settings()`` when omitted.
        registry: Content type registry replacing the configured backend.
        store: Entry store replacing the configured backend.

    Returns:
        FastAPI: The application, instrumented when tracing is enabled.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    engine: AsyncEngine | None = None
    if registry is None or store is None:
        default_registry, default_store, engine = build_stores(settings)
        if registry is None:
            registry = default_registry
        if store is None:
            store = default_store

    config = settings.content_api_config
    service = ContentService(
        registry,
        store,
        config,
        settings.log_config,
        expose_errors=not settings.is_production,
    )

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.registry = registry
    application.state.engine = engine
    application.state.content_service = service

    register_exception_handlers(application)

    # Added last runs first: security headers wrap the request context
    application.add_middleware(RequestContextMiddleware)
    application.add_middleware(
        SecurityHeadersMiddleware,
        hsts_enabled=settings.is_production,
        csp_exempt_paths=[settings.docs_url, settings.redoc_url],
    )

    prefix = config.api_prefix

    @application.api_route(prefix, methods=CONTENT_API_METHODS, include_in_schema=False)
    @application.api_route(
        f"{prefix}/{{path:path}}",
        methods=CONTENT_API_METHODS,
        summary="Dynamic content API",
    )
    async def content_api(
        request: Request, content_service: ContentServiceDep
    ) -> Response:
        """Serve ``{prefix}/{contentType}[/{entryId}]`` and the status endpoint."""
        api_request = await build_api_request(request)
        return envelope_response(await content_service.handle(api_request))

    @application.options(prefix, include_in_schema=False)
    @application.options(f"{prefix}/{{path:path}}", include_in_schema=False)
    async def content_api_preflight() -> Response:
        """Answer CORS preflight requests."""
        return Response(status_code=204, headers=preflight_headers(config))

    @application.get("/health")
    async def health() -> dict[str, object]:
        """Liveness probe; the database backend also reports connectivity."""
        report: dict[str, object] = {
            "status": "healthy",
            "store_backend": config.store_backend,
        }
        if engine is None:
            return report

        reachable, error_msg = await check_database_connection(engine)
        report["database"] = reachable
        if not reachable:
            logger.warning("Content database unreachable: {}", error_msg)
            report["status"] = "degraded"
        elif isinstance(pool := engine.pool, QueuePool):
            logger.bind(
                checked_out=pool.checkedout(),
                pool_size=pool.size(),
                overflow=pool.overflow(),
            ).debug("Content database pool usage")

        return report

    @application.get("/info")
    async def info(app_settings: AppSettingsDep) -> dict[str, Any]:
        """Name, versions and mount point of this deployment."""
        return {
            "app_name": app_settings.app_name,
            "version": app_settings.app_version,
            "api_version": app_settings.content_api_config.api_version,
            "api_prefix": app_settings.content_api_config.api_prefix,
            "environment": app_settings.environment,
            "debug": app_settings.debug,
        }

    instrument_app(application, settings, engine)

    return application


app = create_app()
