"""Loguru setup for the content API.

``LOG_CONFIG__LOG_FORMATTER_TYPE`` selects the sink:

- ``console``: one colored line per record, request and content fields
  first (development)
- ``json``: one orjson-encoded object per line (staging, production)

Records from the standard library (uvicorn, SQLAlchemy) are routed into
Loguru through :class:`InterceptHandler`. The HTTP middleware contextualizes
``request_id`` and ``correlation_id``; the content pipeline binds
``middleware``, and the orchestrator ``content_type``, ``entry_id`` and
``operation``.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, cast

import orjson
from loguru import logger

from src.core.constants import REDACTED
from src.core.error_context import is_sensitive_field

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.core.config import Settings
    from src.core.types import LogContext


@dataclass
class _LoggingState:
    configured: bool = False
    formatter: str | None = None


_state = _LoggingState()

DEFAULT_LOG_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{message}"
)
CORRELATION_ID_DISPLAY_LENGTH: Final[int] = 8
MAX_FIELD_VALUE_LENGTH: Final[int] = 100
INTERCEPTED_LOGGERS: Final[tuple[str, ...]] = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
)

# uvicorn.access args: client, method, path, http version, status
_ACCESS_LOG_ARG_COUNT: Final[int] = 5


def _escape(value: object) -> str:
    return str(value).replace("{", "{{").replace("}", "}}")


def _short_id(value: object) -> str:
    return str(value)[:CORRELATION_ID_DISPLAY_LENGTH]


def _milliseconds(value: object) -> str:
    return f"{value}ms"


def _colored_status(value: object) -> str:
    text = str(value)
    if text.startswith("2"):
        return f"<green>{text}</green>"
    if text.startswith(("4", "5")):
        return f"<red>{text}</red>"
    return text


# Rendered first, in this order, when present on a record
PRIORITY_FIELDS: Final[dict[str, Callable[[object], str]]] = {
    "correlation_id": _short_id,
    "request_id": str,
    "method": str,
    "path": str,
    "status_code": _colored_status,
    "success": str,
    "duration_ms": _milliseconds,
    "middleware": str,
    "operation": str,
    "content_type": str,
    "entry_id": str,
}


def _format_priority_field(field: str, value: object) -> str:
    return _escape(PRIORITY_FIELDS.get(field, str)(value))


def _format_extra_field(key: str, value: object) -> str:
    text = REDACTED if is_sensitive_field(key) else str(value)
    if len(text) > MAX_FIELD_VALUE_LENGTH:
        text = text[: MAX_FIELD_VALUE_LENGTH - 3] + "..."
    return f"{_escape(key)}={_escape(text)}"


def _format_context_fields(extra: LogContext) -> list[str]:
    parts = [
        f"[<yellow>{_format_priority_field(field, extra[field])}</yellow>]"
        for field in PRIORITY_FIELDS
        if extra.get(field) is not None
    ]
    for key, value in extra.items():
        if key in PRIORITY_FIELDS or key.startswith("_") or value is None:
            continue
        parts.append(f"[<dim>{_format_extra_field(key, value)}</dim>]")
    return parts


def format_console_with_context(record: dict[str, Any]) -> str:
    """Loguru format function showing every bound field inline.

    Falls back to :data:`DEFAULT_LOG_FORMAT` for records it cannot read.
    """
    try:
        timestamp = record["time"].strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        columns = [
            f"<green>{timestamp}</green>",
            f"<level>{record['level'].name: <8}</level>",
            f"<cyan>{record['name']}:{record['function']}:{record['line']}</cyan>",
        ]
    except (AttributeError, KeyError, TypeError, ValueError):
        return DEFAULT_LOG_FORMAT + "\n"

    context = _format_context_fields(record.get("extra", {}))
    if context:
        columns.append(" ".join(context))
    columns.append(_escape(record.get("message", "")))

    line = " | ".join(columns)
    if record.get("exception"):
        line += "\n{exception}"
    return line + "\n"


def serialize_for_json(record: dict[str, Any]) -> str:
    """Render ``record`` as one JSON line with sensitive fields redacted."""
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }
    entry |= {
        key: REDACTED if is_sensitive_field(key) else value
        for key, value in record.get("extra", {}).items()
        if not key.startswith("_")
    }

    exception = record.get("exception")
    if exception:
        entry["exception"] = {
            "type": exception.type.__name__ if exception.type else None,
            "value": str(exception.value) if exception.value else None,
        }

    return orjson.dumps(entry, default=str, option=orjson.OPT_APPEND_NEWLINE).decode()


class InterceptHandler(logging.Handler):
    """Hands standard library records over to Loguru.

    uvicorn access records additionally bind ``method``, ``path`` and
    ``status_code`` so they line up with the request log.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Report the frame that called the stdlib logger
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        fields: dict[str, Any] = {}
        args = record.args
        if (
            record.name == "uvicorn.access"
            and isinstance(args, tuple)
            and len(args) == _ACCESS_LOG_ARG_COUNT
        ):
            _, fields["method"], fields["path"], _, fields["status_code"] = args

        logger.opt(depth=depth, exception=record.exc_info).bind(**fields).log(
            level, record.getMessage()
        )


def _json_sink(message: Any) -> None:
    sys.stdout.write(serialize_for_json(message.record))
    sys.stdout.flush()


def setup_logging(settings: Settings) -> None:
    """Replace Loguru's default sink and route stdlib logging into it.

    Only the first call has an effect.
    """
    if _state.configured:
        return

    config = settings.log_config
    formatter = config.log_formatter_type or "console"
    logger.remove()

    if formatter == "json":
        logger.add(
            _json_sink,
            level=config.log_level,
            enqueue=True,
            backtrace=False,
            diagnose=False,
        )
    else:
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=config.log_level,
            enqueue=True,
            colorize=True,
            backtrace=settings.debug,
            diagnose=settings.debug,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    _state.configured = True
    _state.formatter = formatter
    logger.info(
        "Logging configured with {} formatter", formatter, log_level=config.log_level
    )
