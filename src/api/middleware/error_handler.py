"""Exception handlers that render every failure as a content API envelope.

Whatever escapes a route (a Contentum exception, a framework 404/405, a
request validation failure or an unexpected error) is rendered in the same
response envelope the content pipeline produces, so clients only ever see
one error shape.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from src.api.dependencies import get_app_settings
from src.api.utils.responses import envelope_response
from src.content.envelope import error_response, response_from_exception
from src.core.error_context import sanitize_error_context
from src.core.exceptions import ContentumError, ErrorCode

HTTP_STATUS_ERROR_CODES: dict[int, ErrorCode] = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.BAD_REQUEST,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.AUTHENTICATION_REQUIRED,
    status.HTTP_403_FORBIDDEN: ErrorCode.AUTHORIZATION_FAILED,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
    status.HTTP_409_CONFLICT: ErrorCode.CONFLICT,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorCode.RATE_LIMITED,
}


def _api_version(request: Request) -> str:
    return get_app_settings(request).content_api_config.api_version


def error_code_for_status(status_code: int) -> ErrorCode:
    """Map an HTTP status raised by the framework onto an envelope error code."""
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return ErrorCode.INTERNAL_SERVER_ERROR
    return HTTP_STATUS_ERROR_CODES.get(status_code, ErrorCode.BAD_REQUEST)


async def contentum_error_handler(request: Request, exc: Exception) -> Response:
    """Handle ContentumError exceptions.

    Args:
        request: The FastAPI request that caused the exception
        exc: The ContentumError exception to handle

    Returns:
        Response: Envelope with the error's code, message and details

    Raises:
        TypeError: If exc is not a ContentumError instance
    """
    # Type narrowing - this handler is only registered for ContentumError
    if not isinstance(exc, ContentumError):
        raise TypeError(f"Expected ContentumError, got {type(exc).__name__}")

    error_context = sanitize_error_context(
        exc,
        {"request_method": request.method, "request_path": str(request.url.path)},
    )
    log = logger.info if exc.is_expected else logger.error
    log(
        "Handling {exception_type}: {message}",
        exception_type=type(exc).__name__,
        message=exc.message,
        **error_context,
    )

    return envelope_response(
        response_from_exception(exc, version=_api_version(request))
    )


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Report parameter validation failures as BAD_REQUEST.

    Each validation problem becomes one ``"<location>: <message>"`` detail.

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    details = []
    for error in exc.errors():
        location = ".".join(str(loc) for loc in error.get("loc", ()))
        details.append(f"{location or 'request'}: {error.get('msg', 'Invalid value')}")

    logger.warning(
        "Request validation failed",
        method=request.method,
        path=str(request.url.path),
        validation_errors=details,
    )

    return envelope_response(
        error_response(
            ErrorCode.BAD_REQUEST,
            "Request validation failed",
            details,
            version=_api_version(request),
        )
    )


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException (unknown routes, unsupported verbs).

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    error_code = error_code_for_status(exc.status_code)
    path = str(request.url.path)

    logger.info(
        "HTTP exception",
        status_code=exc.status_code,
        method=request.method,
        path=path,
        detail=exc.detail,
    )

    if error_code is ErrorCode.NOT_FOUND:
        message = f"No route matches '{path}'"
    elif error_code is ErrorCode.METHOD_NOT_ALLOWED:
        message = f"HTTP method '{request.method}' is not allowed for '{path}'"
    else:
        message = str(exc.detail)

    response = envelope_response(
        error_response(
            error_code, message, [str(exc.detail)], version=_api_version(request)
        )
    )
    # Keep framework headers such as Allow
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle generic exceptions.

    Catches all unhandled exceptions and converts them to an
    INTERNAL_SERVER_ERROR envelope. In production, hides the failure text.
    """
    error_context = sanitize_error_context(
        exc,
        {"request_method": request.method, "request_path": str(request.url.path)},
    )

    logger.exception(
        "Unhandled exception: {exception_type}",
        exception_type=type(exc).__name__,
        **error_context,
    )

    settings = get_app_settings(request)
    details = None
    if not settings.is_production:
        details = [f"{type(exc).__name__}: {exc}"]

    return envelope_response(
        error_response(
            ErrorCode.INTERNAL_SERVER_ERROR,
            details=details,
            version=settings.content_api_config.api_version,
        )
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-rendering handlers on ``app``."""
    app.add_exception_handler(ContentumError, contentum_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.debug("Envelope exception handlers registered")
