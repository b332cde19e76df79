"""Type aliases for dynamic data structures throughout the application.

This module centralizes type definitions for data that cannot be statically
typed, providing clear semantic meaning for these types.

All types defined here should be JSON-serializable to support logging,
API responses, and persistence layers.
"""

from typing import Any

# JSON-compatible type that represents any valid JSON value
# Used for request bodies and response payloads
type JsonValue = (
    dict[str, "JsonValue"] | list["JsonValue"] | str | int | float | bool | None
)

# Context dictionary for logging additional information
type LogContext = dict[str, Any]  # JSON-serializable values

# Context dictionary for error details and debugging information
type ErrorContext = dict[str, Any]  # flexible error context

# Decoded query string, one value per key
type QueryParams = dict[str, str]

# Response header names mapped to values
type HeaderMap = dict[str, str]
