"""Structured exception hierarchy for consistent error handling.

This module defines the complete exception system for the Contentum content
API, providing a rich error model that supports debugging, monitoring, and
client communication.

Key components:
- **ErrorCode enum**: The closed set of error identifiers surfaced to clients,
  each bound to its HTTP status code
- **Severity enum**: Error classification for monitoring and alerting
- **ContentumError**: Base exception with details, context and fingerprinting
- **Specialized exceptions**: One class per client-facing failure family

Every failure the content API reports is expressed as one of these classes.
The orchestrator and the HTTP layer translate them into the response
envelope, so no other error shape ever reaches a caller.
"""

import hashlib
import traceback
from collections.abc import Iterable
from enum import Enum

from src.core.types import ErrorContext


class ErrorCode(Enum):
    """Error codes exposed in the response envelope.

    The set is closed: clients may switch on these values.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Submitted content failed field validation."""

    BAD_REQUEST = "BAD_REQUEST"
    """The request itself is malformed (path, query, body)."""

    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    """No credentials were supplied for a protected path."""

    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    """Supplied credentials were not accepted."""

    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"
    """The caller is known but lacks permission."""

    NOT_FOUND = "NOT_FOUND"
    """The content type, entry or route does not exist."""

    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    """The HTTP verb is not supported for the target."""

    CONFLICT = "CONFLICT"
    """The request conflicts with the current state of a resource."""

    RATE_LIMITED = "RATE_LIMITED"
    """The caller exceeded the request budget for the current window."""

    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    """An unexpected failure occurred while serving the request."""

    @property
    def http_status(self) -> int:
        """HTTP status code reported for this error code."""
        return ERROR_STATUS_MAP[self]


ERROR_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.AUTHENTICATION_REQUIRED: 401,
    ErrorCode.AUTHENTICATION_FAILED: 401,
    ErrorCode.AUTHORIZATION_FAILED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
    ErrorCode.CONFLICT: 409,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.INTERNAL_SERVER_ERROR: 500,
}


class Severity(Enum):
    """Severity levels for errors raised by the content API.

    These severity levels help categorize the impact and urgency of errors,
    enabling appropriate handling, monitoring, and alerting strategies.
    """

    LOW = "LOW"
    """Expected client mistakes (bad input, missing resources)."""

    MEDIUM = "MEDIUM"
    """Rejections that may deserve attention (throttling, conflicts)."""

    HIGH = "HIGH"
    """Security relevant failures such as rejected credentials."""

    CRITICAL = "CRITICAL"
    """Unexpected failures inside the service."""


class ContentumError(Exception):
    """Base exception class for all Contentum exceptions.

    Args:
        error_code: Client-facing error code
        message: Human-readable error message
        details: Individual problem descriptions reported alongside the message
        severity: Severity level of the error (defaults to MEDIUM)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        details: Iterable[str] | None = None,
        severity: Severity = Severity.MEDIUM,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.details = list(details) if details is not None else []
        self.severity = severity
        self.context = context or {}
        self.cause = cause

        # Capture stack trace at creation time
        self.stack_trace = traceback.format_stack()[:-1]
        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    def _generate_fingerprint(self) -> str:
        """Generate a fingerprint for error grouping.

        Creates a hash based on the error type and the location where it was
        raised, allowing similar errors to be grouped together in logs.

        Returns:
            str: A hash string for error grouping
        """
        max_frames = 5
        relevant_frames = self.stack_trace[-max_frames:]

        fingerprint_data = f"{self.__class__.__name__}:{self.error_code.value}"
        for frame in relevant_frames:
            if "site-packages" not in frame and "src/" in frame:
                lines = frame.strip().split("\n")
                if lines:
                    fingerprint_data += f":{lines[0]}"

        return hashlib.sha256(fingerprint_data.encode()).hexdigest()[:16]

    @property
    def http_status(self) -> int:
        """HTTP status code matching this error's code."""
        return self.error_code.http_status

    @property
    def is_expected(self) -> bool:
        """Whether the error is part of normal operation (LOW or MEDIUM)."""
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        details_str = f", details={self.details}" if self.details else ""
        return (
            f"{class_name}(error_code='{self.error_code.value}', "
            f"message='{self.message}', severity={self.severity.value}{details_str})"
        )


class ValidationError(ContentumError):
    """Raised when submitted content fails field validation.

    Args:
        message: Summary of the validation failure
        details: One entry per violated rule
        context: Additional context information about the error
    """

    def __init__(
        self,
        message: str = "Validation failed",
        details: Iterable[str] | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.VALIDATION_ERROR, message, details, Severity.LOW, context
        )


class BadRequestError(ContentumError):
    """Raised when the request path, query or body is malformed."""

    def __init__(
        self,
        message: str,
        details: Iterable[str] | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.BAD_REQUEST, message, details, Severity.LOW, context, cause
        )


class NotFoundError(ContentumError):
    """Raised when a content type, entry or route cannot be found."""

    def __init__(
        self,
        message: str,
        details: Iterable[str] | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.NOT_FOUND,
            message,
            [message] if details is None else details,
            Severity.LOW,
            context,
        )


class MethodNotAllowedError(ContentumError):
    """Raised when an HTTP verb is not supported for the target.

    Args:
        method: The rejected HTTP method
        path: The request path
        allowed_methods: Verbs that the target does support
    """

    def __init__(
        self, method: str, path: str, allowed_methods: Iterable[str]
    ) -> None:
        self.allowed_methods = list(allowed_methods)
        super().__init__(
            ErrorCode.METHOD_NOT_ALLOWED,
            f"HTTP method '{method}' is not allowed for '{path}'",
            [f"Supported methods: {', '.join(self.allowed_methods)}"],
            Severity.LOW,
            {"method": method, "path": path},
        )


class AuthenticationError(ContentumError):
    """Raised when credentials are missing or rejected.

    Args:
        message: Description of the failure
        required: True when no credentials were supplied at all
    """

    def __init__(self, message: str, *, required: bool = False) -> None:
        error_code = (
            ErrorCode.AUTHENTICATION_REQUIRED
            if required
            else ErrorCode.AUTHENTICATION_FAILED
        )
        super().__init__(error_code, message, [message], Severity.HIGH)


class RateLimitedError(ContentumError):
    """Raised when a client exhausts its request budget.

    Args:
        message: Description shown to the client
        retry_after: Seconds until the current window resets
    """

    def __init__(self, message: str, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(
            ErrorCode.RATE_LIMITED,
            message,
            [f"Retry after {retry_after} seconds"],
            Severity.MEDIUM,
            {"retry_after": retry_after},
        )


class StoreError(ContentumError):
    """Known failure reported by an entry store or content-type registry.

    Stores raise this for conditions they understand (constraint violations,
    rejected writes). The orchestrator reports it as BAD_REQUEST; anything
    else escaping a store is treated as an internal error.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(
            ErrorCode.BAD_REQUEST, message, None, Severity.MEDIUM, None, cause
        )
