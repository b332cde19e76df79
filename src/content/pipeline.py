"""Middleware pipeline wrapping the content orchestrator.

A :class:`Pipeline` is an immutable value: its middlewares are folded into a
single handler once, at construction, and every request runs through that
handler. Adding or removing a middleware produces a new pipeline.
"""

import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from loguru import logger

from src.content.envelope import ApiResponse, error_response
from src.content.models import ApiRequest
from src.core.constants import MILLISECONDS_PER_SECOND
from src.core.error_context import sanitize_error_context
from src.core.exceptions import ErrorCode

type Handler = Callable[[ApiRequest], Awaitable[ApiResponse]]
type Middleware = Callable[[ApiRequest, Handler], Awaitable[ApiResponse]]


@dataclass(frozen=True, slots=True)
class NamedMiddleware:
    """A middleware and the name it is reported under."""

    name: str
    handler: Middleware


def _link(middleware: Middleware, next_handler: Handler) -> Handler:
    async def call(request: ApiRequest) -> ApiResponse:
        return await middleware(request, next_handler)

    return call


class Pipeline:
    """Ordered middleware chain in front of a terminal handler.

    Args:
        terminal: Handler reached after every middleware delegated.
        middlewares: Middlewares in execution order.
        expose_errors: Include exception text in internal error details.
        version: API version reported in envelopes the pipeline builds.
    """

    def __init__(
        self,
        terminal: Handler,
        middlewares: Sequence[NamedMiddleware] = (),
        *,
        expose_errors: bool = True,
        version: str | None = None,
    ) -> None:
        self._terminal = terminal
        self._middlewares = tuple(middlewares)
        self._expose_errors = expose_errors
        self._version = version

        chain = terminal
        for middleware in reversed(self._middlewares):
            chain = _link(middleware.handler, chain)
        self._chain = chain

    @property
    def names(self) -> list[str]:
        """Middleware names in execution order."""
        return [middleware.name for middleware in self._middlewares]

    def with_middleware(self, middleware: NamedMiddleware) -> "Pipeline":
        """Return a new pipeline with ``middleware`` appended."""
        return Pipeline(
            self._terminal,
            [*self._middlewares, middleware],
            expose_errors=self._expose_errors,
            version=self._version,
        )

    def without_middleware(self, name: str) -> "Pipeline":
        """Return a new pipeline without the middlewares called ``name``."""
        return Pipeline(
            self._terminal,
            [middleware for middleware in self._middlewares if middleware.name != name],
            expose_errors=self._expose_errors,
            version=self._version,
        )

    async def handle(self, request: ApiRequest) -> ApiResponse:
        """Run ``request`` through the chain; never raises."""
        start_time = time.perf_counter()
        try:
            response = await self._chain(request)
        except Exception as exc:  # noqa: BLE001
            logger.opt(exception=exc).error(
                "Unhandled error in content pipeline: {}",
                type(exc).__name__,
                method=request.method,
                path=request.path,
                **sanitize_error_context(exc),
            )
            details = [str(exc)] if self._expose_errors and str(exc) else None
            response = error_response(
                ErrorCode.INTERNAL_SERVER_ERROR, details=details, version=self._version
            )

        elapsed_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND
        return response.with_processing_time(elapsed_ms)
