from __future__ import annotations

import json
import os
import re
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping

_SECRET_KEY_PATTERN = re.compile(
    r"(token|api_key|apikey|authorization|cookie|session|secret|password)",
    re.IGNORECASE,
)
_URL_SECRET_PATTERN = re.compile(r"(token|api_key|apikey|access_token|session|sid)=([^&\s]+)", re.IGNORECASE)
_CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x1f\x7f]")
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
_MAX_VALUE_LENGTH = 4000
_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR"})


def _escape_control_char(match: re.Match[str]) -> str:
    char = match.group(0)
    return _CONTROL_ESCAPES.get(char, f"\\x{ord(char):02x}")


def sanitize_value(value: object) -> object:
    if isinstance(value, str):
        sanitized = _CONTROL_CHARS_PATTERN.sub(_escape_control_char, value)
        sanitized = _URL_SECRET_PATTERN.sub(r"\1=***", sanitized)
        if len(sanitized) > _MAX_VALUE_LENGTH:
            return sanitized[:_MAX_VALUE_LENGTH] + "..."
        return sanitized
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {key: "***" if _SECRET_KEY_PATTERN.search(str(key)) else sanitize_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [sanitize_value(val) for val in value]
    return str(value)


def sanitize_event(_: object, __: object, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    return {
        key: "***" if _SECRET_KEY_PATTERN.search(key) else sanitize_value(value)
        for key, value in event_dict.items()
    }


def _add_timestamp(_: object, __: object, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _render_json(_: object, __: object, event_dict: MutableMapping[str, Any]) -> str:
    return json.dumps(event_dict, ensure_ascii=False, default=str)


def parse_level(value: str | None = None) -> str:
    level = (value or os.environ.get("LOG_LEVEL", "INFO")).upper()
    return level if level in _LEVELS else "INFO"


def configure_logging(level: str | None = None, fmt: str | None = None) -> structlog.BoundLogger:
    """Configure structlog for the process.

    Explicit arguments win over ``LOG_LEVEL`` / ``LOG_FORMAT``; the default output
    is one JSON object per line on stderr, leaving stdout to command output.
    """
    format_hint = (fmt or os.environ.get("LOG_FORMAT", "json")).lower()

    processors: list[structlog.types.Processor] = [
        sanitize_event,
        _add_timestamp,
        structlog.processors.add_log_level,
    ]
    if format_hint == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.extend([structlog.processors.format_exc_info, _render_json])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(parse_level(level)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    return cast("structlog.BoundLogger", structlog.get_logger())


def get_logger(name: str) -> structlog.BoundLogger:
    return cast("structlog.BoundLogger", structlog.get_logger(name))
