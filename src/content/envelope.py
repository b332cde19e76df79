"""Wire response envelope shared by every content API response.

Shape on the wire (``None`` members omitted)::

    {
        "success": bool,
        "message": str,
        "data": ...,
        "error": {"code": ErrorCode, "message": str, "details": [str]},
        "meta": {"requestId", "timestamp", "version", "processingTime"},
    }
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from pydantic import Field

from src.content.models import CamelModel
from src.core.config import get_settings
from src.core.context import current_request_id
from src.core.exceptions import ContentumError, ErrorCode
from src.core.types import HeaderMap, JsonValue

DEFAULT_ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Validation failed",
    ErrorCode.BAD_REQUEST: "Bad request",
    ErrorCode.AUTHENTICATION_REQUIRED: "Authentication required",
    ErrorCode.AUTHENTICATION_FAILED: "Authentication failed",
    ErrorCode.AUTHORIZATION_FAILED: "Insufficient permissions",
    ErrorCode.NOT_FOUND: "Resource not found",
    ErrorCode.METHOD_NOT_ALLOWED: "Method not allowed",
    ErrorCode.CONFLICT: "Resource conflict",
    ErrorCode.RATE_LIMITED: "Rate limit exceeded",
    ErrorCode.INTERNAL_SERVER_ERROR: "Internal server error",
}


class ErrorInfo(CamelModel):
    """Error block of a failed response."""

    code: ErrorCode
    message: str
    details: list[str] | None = None


class ResponseMeta(CamelModel):
    """Metadata attached to every response."""

    request_id: str
    timestamp: str
    version: str
    processing_time: float | None = None


class ApiResponse(CamelModel):
    """Envelope returned by the pipeline.

    ``headers`` carries response headers set by middlewares; it is not part
    of the JSON body.
    """

    success: bool
    message: str
    data: Any = None
    error: ErrorInfo | None = None
    meta: ResponseMeta
    headers: HeaderMap = Field(default_factory=dict, exclude=True)

    @property
    def status_code(self) -> int:
        """HTTP status: 200 on success, otherwise derived from the error code."""
        if self.success or self.error is None:
            return 200
        return self.error.code.http_status

    def to_wire(self) -> dict[str, Any]:
        """Dump the JSON body (camelCase, ``None`` members omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def with_headers(self, headers: HeaderMap) -> "ApiResponse":
        """Return a copy with ``headers`` merged over the existing ones."""
        return self.model_copy(update={"headers": {**self.headers, **headers}})

    def with_processing_time(self, milliseconds: float) -> "ApiResponse":
        """Return a copy with ``meta.processingTime`` set."""
        meta = self.meta.model_copy(update={"processing_time": round(milliseconds, 3)})
        return self.model_copy(update={"meta": meta})


def utc_timestamp() -> str:
    """Current UTC time in ISO 8601 with millisecond precision and ``Z``."""
    return (
        datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    )


def build_meta(version: str | None = None) -> ResponseMeta:
    """Metadata for a response produced in the current request context."""
    return ResponseMeta(
        request_id=current_request_id(),
        timestamp=utc_timestamp(),
        version=version or get_settings().content_api_config.api_version,
    )


def success_response(
    data: JsonValue | None = None,
    message: str = "Request completed successfully",
    *,
    version: str | None = None,
) -> ApiResponse:
    """Build a successful envelope around already-serialized ``data``."""
    return ApiResponse(
        success=True, message=message, data=data, meta=build_meta(version)
    )


def error_response(
    code: ErrorCode,
    message: str | None = None,
    details: Iterable[str] | None = None,
    *,
    version: str | None = None,
) -> ApiResponse:
    """Build a failed envelope; ``message`` defaults per error code."""
    text = message or DEFAULT_ERROR_MESSAGES[code]
    detail_list = list(details) if details is not None else []
    return ApiResponse(
        success=False,
        message=text,
        error=ErrorInfo(code=code, message=text, details=detail_list or None),
        meta=build_meta(version),
    )


def response_from_exception(
    exc: ContentumError, *, version: str | None = None
) -> ApiResponse:
    """Translate a Contentum exception into its envelope."""
    return error_response(exc.error_code, exc.message, exc.details, version=version)
