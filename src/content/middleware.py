"""Built-in middlewares and the factory that installs them.

Each factory returns a :data:`~src.content.pipeline.Middleware` closure.
Any state a middleware needs (the rate limiter's counters) lives inside
that closure, never at module level.
"""

import hmac
import math
import time
from collections.abc import Callable, Iterable

from loguru import logger

from src.content.envelope import ApiResponse, response_from_exception
from src.content.models import ApiRequest
from src.content.pipeline import Handler, Middleware, NamedMiddleware, Pipeline
from src.core.config import ContentApiConfig, LogConfig
from src.core.constants import MILLISECONDS_PER_SECOND
from src.core.exceptions import AuthenticationError, ErrorCode, RateLimitedError

API_KEY_QUERY_PARAMS = ("api_key", "apiKey")
API_KEY_HEADER = "X-API-Key"
API_KEY_REQUIRED_MESSAGE = (
    "API key is required. Provide it as ?api_key=your_key or the X-API-Key header"
)
API_KEY_INVALID_MESSAGE = "Invalid API key provided"
RATE_LIMITED_MESSAGE = "Rate limit exceeded. Please try again later."
RATE_LIMIT_SWEEP_SIZE = 1024


def logging_middleware(
    excluded_paths: Iterable[str] = (), slow_request_threshold_ms: int = 1000
) -> Middleware:
    """Log each request with its outcome and duration."""
    excluded = frozenset(excluded_paths)

    async def handler(request: ApiRequest, next_handler: Handler) -> ApiResponse:
        if request.path in excluded:
            return await next_handler(request)

        start_time = time.perf_counter()

        def elapsed_ms() -> float:
            return round(
                (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND, 2
            )

        with logger.contextualize(method=request.method, path=request.path):
            logger.info(
                "API request started",
                has_body=request.body is not None,
                query=sorted(request.query),
            )
            try:
                response = await next_handler(request)
            except Exception as exc:
                # Reported as a 500 envelope by the pipeline
                logger.info(
                    "API request completed",
                    success=False,
                    status_code=ErrorCode.INTERNAL_SERVER_ERROR.http_status,
                    duration_ms=elapsed_ms(),
                    error_code=ErrorCode.INTERNAL_SERVER_ERROR.value,
                    error_type=type(exc).__name__,
                )
                raise
            duration_ms = elapsed_ms()
            error_code = response.error.code.value if response.error else None
            logger.info(
                "API request completed",
                success=response.success,
                status_code=response.status_code,
                duration_ms=duration_ms,
                error_code=error_code,
            )
            if duration_ms > slow_request_threshold_ms:
                logger.warning(
                    "Slow API request: {} {} took {}ms",
                    request.method,
                    request.path,
                    duration_ms,
                    duration_ms=duration_ms,
                    threshold_ms=slow_request_threshold_ms,
                )
        return response

    return handler


def client_key(request: ApiRequest) -> str:
    """Identify the caller for rate limiting."""
    forwarded = request.header("x-forwarded-for")
    if forwarded and (first := forwarded.split(",")[0].strip()):
        return first
    return request.header("x-real-ip") or request.client or "unknown"


def rate_limit_middleware(
    window_seconds: int,
    max_requests: int,
    clock: Callable[[], float] = time.time,
    *,
    version: str | None = None,
) -> Middleware:
    """Fixed-window throttling per client address.

    The first request of a client opens a window of ``window_seconds``; the
    ``max_requests + 1``-th request inside that window is rejected.
    """
    # client key -> (window reset time, request count)
    windows: dict[str, tuple[float, int]] = {}

    def sweep(now: float) -> None:
        for key in [key for key, (reset_at, _) in windows.items() if reset_at <= now]:
            del windows[key]

    async def handler(request: ApiRequest, next_handler: Handler) -> ApiResponse:
        now = clock()
        if len(windows) > RATE_LIMIT_SWEEP_SIZE:
            sweep(now)

        key = client_key(request)
        reset_at, count = windows.get(key, (now + window_seconds, 0))
        if reset_at <= now:
            reset_at, count = now + window_seconds, 0
        count += 1
        windows[key] = (reset_at, count)

        if count <= max_requests:
            return await next_handler(request)

        retry_after = max(1, math.ceil(reset_at - now))
        logger.warning(
            "Rate limit exceeded for {}", key, middleware="rate_limit", client=key
        )
        response = response_from_exception(
            RateLimitedError(RATE_LIMITED_MESSAGE, retry_after), version=version
        )
        return response.with_headers(
            {
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(max_requests),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(math.ceil(reset_at)),
            }
        )

    return handler


def extract_api_key(request: ApiRequest) -> str | None:
    """Read the caller's key from the query string or the ``X-API-Key`` header."""
    for param in API_KEY_QUERY_PARAMS:
        if value := request.query.get(param):
            return value
    return request.header(API_KEY_HEADER) or None


def auth_middleware(
    api_keys: Iterable[str],
    public_paths: Iterable[str] = (),
    *,
    version: str | None = None,
) -> Middleware:
    """Require an allow-listed API key everywhere except ``public_paths``."""
    allowed = tuple(key.encode() for key in api_keys)
    public = frozenset(path.rstrip("/") or "/" for path in public_paths)

    async def handler(request: ApiRequest, next_handler: Handler) -> ApiResponse:
        if (request.path.rstrip("/") or "/") in public:
            return await next_handler(request)

        api_key = extract_api_key(request)
        if not api_key:
            logger.info("Rejected request without API key", middleware="auth")
            return response_from_exception(
                AuthenticationError(API_KEY_REQUIRED_MESSAGE, required=True),
                version=version,
            )

        candidate = api_key.encode()
        # No early exit: every allowed key is compared
        matched = False
        for key in allowed:
            matched |= hmac.compare_digest(candidate, key)
        if not matched:
            logger.warning("Rejected request with invalid API key", middleware="auth")
            return response_from_exception(
                AuthenticationError(API_KEY_INVALID_MESSAGE), version=version
            )

        return await next_handler(request)

    return handler


def cors_middleware(
    allow_origin: str = "*",
    allow_methods: str = "GET, POST, PUT, DELETE, OPTIONS",
    allow_headers: str = "Content-Type, Authorization, X-API-Key",
) -> Middleware:
    """Annotate every response with access-control headers."""
    headers = {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": allow_methods,
        "Access-Control-Allow-Headers": allow_headers,
    }

    async def handler(request: ApiRequest, next_handler: Handler) -> ApiResponse:
        response = await next_handler(request)
        return response.with_headers(headers)

    return handler


def build_middlewares(
    config: ContentApiConfig, log_config: LogConfig | None = None
) -> list[NamedMiddleware]:
    """Create the enabled built-ins in installation order."""
    log_config = log_config or LogConfig()
    middlewares: list[NamedMiddleware] = []

    if config.enable_logging:
        middlewares.append(
            NamedMiddleware(
                "logging",
                logging_middleware(
                    log_config.excluded_paths, log_config.slow_request_threshold_ms
                ),
            )
        )
    if config.enable_rate_limit:
        middlewares.append(
            NamedMiddleware(
                "rate_limit",
                rate_limit_middleware(
                    config.rate_limit_window_seconds,
                    config.rate_limit_max_requests,
                    version=config.api_version,
                ),
            )
        )
    if config.enable_auth:
        middlewares.append(
            NamedMiddleware(
                "auth",
                auth_middleware(
                    config.api_keys, config.public_paths, version=config.api_version
                ),
            )
        )
    if config.cors_enabled:
        middlewares.append(
            NamedMiddleware(
                "cors",
                cors_middleware(
                    config.cors_allow_origin,
                    config.cors_allow_methods,
                    config.cors_allow_headers,
                ),
            )
        )
    return middlewares


def build_pipeline(
    terminal: Handler,
    config: ContentApiConfig,
    log_config: LogConfig | None = None,
    *,
    expose_errors: bool = True,
) -> Pipeline:
    """Assemble the pipeline described by configuration."""
    middlewares = build_middlewares(config, log_config)
    logger.info(
        "Content pipeline built with middlewares: {}",
        ", ".join(middleware.name for middleware in middlewares) or "none",
    )
    return Pipeline(
        terminal,
        middlewares,
        expose_errors=expose_errors,
        version=config.api_version,
    )
