"""Logging setup for QC runs: text or JSON output with secret redaction."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import IO, Any

# Completion failures often echo client config or request headers
_REDACTIONS = [
    (re.compile(p, re.IGNORECASE), r)
    for p, r in (
        (r"sk-ant-[a-zA-Z0-9_-]{40,}", "[REDACTED_API_KEY]"),
        (r"sk-[a-zA-Z0-9_-]{20,}", "[REDACTED_API_KEY]"),
        (r"Bearer\s+[a-zA-Z0-9._-]{16,}", "Bearer [REDACTED]"),
        (r'api[_-]?key["\']?\s*[:=]\s*["\']?[^"\'\s,}]+', "api_key=[REDACTED]"),
        (r'token["\']?\s*[:=]\s*["\']?[^"\'\s,}]+', "token=[REDACTED]"),
    )
]

# Record attributes set via ``extra=`` by the runner and processor
UNIT_FIELDS = ("unit", "group", "fixture_file", "stage", "duration_ms")

_QUIET_LOGGERS = ("httpx", "httpcore")


def sanitize_log_message(message: str) -> str:
    """Redact API keys and tokens from a log message."""
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)
    return message


class SanitizingFilter(logging.Filter):
    """Redacts secrets from the fully formatted message.

    The message is rendered once and stored back on the record, so
    secrets passed as ``%s`` arguments of any type are covered.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = sanitize_log_message(record.getMessage())
        record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with unit context when present."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in UNIT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines; appends ``[unit]`` for unit-scoped records."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        unit = getattr(record, "unit", None)
        return f"{line} [{unit}]" if unit else line


def configure_logging(
    level: str = "INFO",
    format: str = "text",
    sanitize_logs: bool = True,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Replace the root handlers with a single stream handler.

    Args:
        level: Log level name; unknown names fall back to INFO
        format: 'text' or 'json'
        sanitize_logs: Redact API keys and tokens
        stream: Output stream (defaults to stdout)

    Returns:
        The installed handler
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if format.lower() == "json" else TextFormatter())
    if sanitize_logs:
        handler.addFilter(SanitizingFilter())
    root_logger.addHandler(handler)

    # HTTP clients used inside completion functions are chatty at INFO
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler
