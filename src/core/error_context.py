"""Redaction of secrets before anything reaches the log.

Content API requests carry API keys (header or ``api_key`` query parameter),
and entries may hold PASSWORD field values. Whatever is logged alongside an
error (request context, SQL parameters, exception attributes) goes
through these helpers first. A key is sensitive when it matches the built-in
pattern or contains one of ``log_config.sensitive_fields``. Inputs are
copied, never modified.
"""

from __future__ import annotations

import re
from functools import lru_cache
from re import Pattern
from typing import Any, Final

from src.core.config import get_settings
from src.core.constants import REDACTED
from src.core.exceptions import ContentumError
from src.core.types import ErrorContext

type SanitizableValue = (
    str | int | float | bool | None | dict[str, Any] | list[Any] | tuple[Any, ...]
)

DEFAULT_SENSITIVE_PATTERN: Final[Pattern[str]] = re.compile(
    r"password|passwd|pwd|secret|token|api[_-]?key|authorization|credential|"
    r"private[_-]?key|access[_-]?key|session|connection[_-]?string",
    re.IGNORECASE,
)

# Nesting deeper than this is redacted wholesale
MAX_DEPTH: Final[int] = 10


@lru_cache(maxsize=1)
def _get_sensitive_fields() -> tuple[str, ...]:
    configured = get_settings().log_config.sensitive_fields
    return tuple(name.lower() for name in configured)


def is_sensitive_field(field_name: str) -> bool:
    """True when ``field_name`` looks like it names a secret."""
    if DEFAULT_SENSITIVE_PATTERN.search(field_name):
        return True
    lowered = field_name.lower()
    return any(name in lowered for name in _get_sensitive_fields())


def sanitize_value(
    value: SanitizableValue, field_name: str = "", depth: int = 0
) -> SanitizableValue:
    """Redact ``value`` when its key is sensitive, recursing into containers.

    Args:
        value: Value to sanitize.
        field_name: Key the value was found under, if any.
        depth: Current nesting level.

    Returns:
        SanitizableValue: A sanitized copy.
    """
    if depth > MAX_DEPTH or (field_name and is_sensitive_field(field_name)):
        return REDACTED

    if isinstance(value, dict):
        return {
            key: sanitize_value(item, str(key), depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        items = [sanitize_value(item, "", depth + 1) for item in value]
        return items if isinstance(value, list) else tuple(items)
    return value


def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``data`` with sensitive values redacted."""
    return {key: sanitize_value(value, key) for key, value in data.items()}


def sanitize_error_context(
    error: Exception, context: ErrorContext | None = None
) -> ErrorContext:
    """Build the log context for ``error``.

    Contentum errors contribute their code, severity, fingerprint, details
    and (sanitized) context; other exceptions only their type and message.

    Args:
        error: Exception being logged.
        context: Extra request information, sanitized before inclusion.

    Returns:
        ErrorContext: Context safe to bind to a log record.
    """
    error_context: ErrorContext = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if context:
        error_context |= sanitize_dict(context)

    if isinstance(error, ContentumError):
        error_context |= {
            "error_code": error.error_code.value,
            "severity": error.severity.value,
            "fingerprint": error.fingerprint,
            "error_details": list(error.details),
        }
        if error.context:
            error_context["error_attributes"] = sanitize_dict(error.context)

    return error_context


def sanitize_sql_params(params: object) -> object:
    """Sanitize statement parameters for the SQL query log.

    Named parameters are checked by key. Positional ones carry no names and
    pass through. Anything else is redacted.
    """
    if params is None or isinstance(params, list | tuple):
        return params
    if isinstance(params, dict):
        return sanitize_dict(params)
    return REDACTED
