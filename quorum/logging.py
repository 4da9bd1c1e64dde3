"""
Logging — structured JSON lines for nodes and owner tooling

Every record is one JSON object with ``ts``, ``level``, ``msg`` and
``component`` plus whatever context the caller bound (validators bind
``node_id``). Share values and gammas are never handed to a logger; at most
a truncated commitment hash is.
"""

import logging
import sys
from typing import TextIO

import structlog

DEFAULT_LEVEL = "INFO"
DEFAULT_COMPONENT = "quorum"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def configure_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """
    Configure structlog for the process.

    Args:
        level: Level name, case-insensitive. Unknown names fall back to INFO.
        stream: Where lines go (stdout by default).
    """
    numeric_level = _LEVELS.get((level or DEFAULT_LEVEL).upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        handlers=[logging.StreamHandler(stream or sys.stdout)],
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.stdlib.add_log_level,
            _add_component,
            _event_to_msg,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def _add_component(logger, _method: str, event_dict: dict) -> dict:
    # Module loggers are named after their module (quorum.validator, ...)
    event_dict.setdefault("component", getattr(logger, "name", None) or DEFAULT_COMPONENT)
    return event_dict


def _event_to_msg(_logger, _method: str, event_dict: dict) -> dict:
    if "msg" not in event_dict:
        event_dict["msg"] = event_dict.pop("event", "")
    return event_dict


__all__ = ["configure_logging", "DEFAULT_LEVEL"]
