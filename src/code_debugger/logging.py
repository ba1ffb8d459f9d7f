"""
Logging configuration using structlog.

Console output goes to stderr at the requested level. With a log file, every
event down to DEBUG is also written there as one JSON object per line, so a
failed repair can be traced after the fact without re-running with -v.
"""

import re
import sys
import logging
from typing import Any
from pathlib import Path

import structlog
from structlog.types import Processor


REDACTED = "[REDACTED]"

# Keys whose values never reach the logs, at any nesting depth
REDACT_PATTERNS = [
    "authorization",
    "api_key",
    "apikey",
    "cookie",
    "secret",
    "password",
    "token",
]

# user:password@ in service URLs
_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/@\s]+@", re.IGNORECASE)


def _is_secret_key(key: Any) -> bool:
    lowered = str(key).lower()
    return any(pattern in lowered for pattern in REDACT_PATTERNS)


def scrub_url_credentials(text: str) -> str:
    """Replace the userinfo part of any URL in `text`."""
    return _URL_CREDENTIALS.sub(rf"\g<scheme>{REDACTED}@", text)


def _redact_value(key: Any, value: Any) -> Any:
    if _is_secret_key(key) and value is not None:
        return REDACTED
    if isinstance(value, str):
        return scrub_url_credentials(value)
    if isinstance(value, dict):
        # Header maps and request payloads
        return {k: _redact_value(k, v) for k, v in value.items()}
    return value


def redact_secrets(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Redact secret-looking keys and URL credentials from log entries."""
    for key, value in list(event_dict.items()):
        if key == "event":
            continue
        event_dict[key] = _redact_value(key, value)
    return event_dict


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
) -> None:
    """
    Configure structlog for the application.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to a JSON-lines log file that records DEBUG and up
    """
    console_level = getattr(logging, level.upper())

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_secrets,
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=True),
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [console_handler]
    root_logger.setLevel(console_level)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=shared_processors,
            )
        )
        root_logger.addHandler(file_handler)
        root_logger.setLevel(logging.DEBUG)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)
