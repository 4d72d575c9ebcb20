"""Structured logging for chat_relay.

structlog is configured once per process, either with defaults on first
import or explicitly through ``configure_logging``. Every event passes
through ``redact_credentials`` so provider keys never reach a log line,
whatever a call site happens to bind.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

__all__ = [
    "REDACTED_KEYS",
    "configure_logging",
    "get_logger",
    "mask_secret",
    "redact_credentials",
]

# Event keys whose values are always masked
REDACTED_KEYS = frozenset({"api_key", "authorization", "credential", "secret", "token"})

_QUIET_LOGGERS = ("httpx", "httpcore", "motor", "pymongo", "openai", "anthropic")


def mask_secret(secret: str | None) -> str:
    """Render a credential safe for logs: first and last four characters only."""
    if not secret:
        return "[missing]"
    if len(secret) <= 8:
        return "[invalid]"
    return f"{secret[:4]}...{secret[-4:]}"


def redact_credentials(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking credential-looking fields."""
    for key in event_dict.keys() & REDACTED_KEYS:
        value = event_dict[key]
        event_dict[key] = mask_secret(value if isinstance(value, str) else None)
    return event_dict


def configure_logging(
    level: int | str = logging.INFO,
    json_output: bool = False,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Level number or name such as "DEBUG"
        json_output: Render JSON lines instead of colored console output
        add_timestamp: Prefix events with an ISO timestamp
    """
    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_credentials,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))
    processors.append(
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(), exception_formatter=structlog.dev.plain_traceback
        )
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, usually for ``__name__``."""
    return structlog.get_logger(name)


_configured = False


def _ensure_configured() -> None:
    global _configured
    if not _configured:
        configure_logging()
        _configured = True


_ensure_configured()
