"""Logging setup: structlog over the stdlib logger, always on stderr."""

import logging
import sys
from typing import Any

import structlog

# event keys whose values are Doppler access tokens
TOKEN_KEYS = frozenset({"token", "access_token", "doppler_token"})


def redact_tokens(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Keep only the ``dp.xx.`` type prefix of any token-valued field."""
    for key in TOKEN_KEYS & event_dict.keys():
        value = event_dict[key]
        if isinstance(value, str) and not value.endswith("***"):
            prefix = ".".join(value.split(".")[:2]) + "." if value.count(".") >= 2 else ""
            event_dict[key] = f"{prefix}***"
    return event_dict


def configure_logging(level: int | str = logging.WARNING, json_output: bool = False) -> None:
    """
    Route structlog through stdlib logging on stderr.

    stdout stays reserved for command output (``dopplervars get`` /
    ``export``), so log lines never end up in a captured secret value.
    """
    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_tokens,
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr, force=True)


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Bind ``kwargs`` to all later log lines of this run and return a logger."""
    structlog.contextvars.bind_contextvars(**kwargs)
    return structlog.get_logger().bind(**kwargs)
