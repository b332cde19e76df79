"""Content API façade: the pipeline, the orchestrator and the status endpoint."""

from typing import Any

from src.content.envelope import (
    ApiResponse,
    response_from_exception,
    success_response,
    utc_timestamp,
)
from src.content.middleware import build_pipeline
from src.content.models import ApiRequest
from src.content.orchestrator import ContentOrchestrator
from src.content.pipeline import Pipeline
from src.content.protocols import ContentTypeRegistry, EntryStore
from src.content.router import ContentRouter
from src.core.config import ContentApiConfig, LogConfig
from src.core.exceptions import MethodNotAllowedError
from src.core.types import QueryParams


class ContentService:
    """Entry point for content API requests.

    The pipeline is built once here and reused for every request.

    Args:
        registry: Content type registry.
        store: Entry store.
        config: Content API configuration.
        log_config: Logging configuration for the logging middleware.
        expose_errors: Include failure text in error details (off in production).
    """

    def __init__(
        self,
        registry: ContentTypeRegistry,
        store: EntryStore,
        config: ContentApiConfig | None = None,
        log_config: LogConfig | None = None,
        *,
        expose_errors: bool = True,
    ) -> None:
        self.config = config or ContentApiConfig()
        self.registry = registry
        self.store = store
        self.router = ContentRouter(registry, self.config.api_prefix)
        self.orchestrator = ContentOrchestrator(
            self.router,
            store,
            default_page_size=self.config.default_page_size,
            expose_errors=expose_errors,
            version=self.config.api_version,
        )
        self.pipeline: Pipeline = build_pipeline(
            self._dispatch, self.config, log_config, expose_errors=expose_errors
        )

    async def _dispatch(self, request: ApiRequest) -> ApiResponse:
        if request.path.rstrip("/") == self.config.status_path:
            if request.method != "GET":
                return response_from_exception(
                    MethodNotAllowedError(request.method, request.path, ["GET"]),
                    version=self.config.api_version,
                )
            return self.status()
        return await self.orchestrator.handle(request)

    async def handle(self, request: ApiRequest) -> ApiResponse:
        """Run ``request`` through the middleware pipeline."""
        return await self.pipeline.handle(request)

    def status(self) -> ApiResponse:
        """Health and configuration summary of the content API."""
        return success_response(
            {
                "status": "healthy",
                "timestamp": utc_timestamp(),
                "version": self.config.api_version,
                "middlewares": self.pipeline.names,
                "config": {
                    "enableAuth": self.config.enable_auth,
                    "enableLogging": self.config.enable_logging,
                    "corsEnabled": self.config.cors_enabled,
                    "rateLimitEnabled": self.config.enable_rate_limit,
                },
            },
            "API is healthy",
            version=self.config.api_version,
        )

    async def get(self, path: str, query: QueryParams | None = None) -> ApiResponse:
        """Convenience GET."""
        return await self.handle(ApiRequest(method="GET", path=path, query=query or {}))

    async def post(self, path: str, body: Any) -> ApiResponse:
        """Convenience POST."""
        return await self.handle(ApiRequest(method="POST", path=path, body=body))

    async def put(self, path: str, body: Any) -> ApiResponse:
        """Convenience PUT."""
        return await self.handle(ApiRequest(method="PUT", path=path, body=body))

    async def delete(self, path: str) -> ApiResponse:
        """Convenience DELETE."""
        return await self.handle(ApiRequest(method="DELETE", path=path))
