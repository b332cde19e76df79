"""Core infrastructure shared by every layer of Contentum.

- **config**: pydantic-settings configuration with nested sections
- **context**: request-scoped correlation and request ids
- **exceptions**: error codes and the exception hierarchy behind them
- **error_context**: redaction of sensitive values before logging
- **logging**: Loguru setup and standard library interception
- **observability**: OpenTelemetry tracing
- **types**: shared type aliases
"""
