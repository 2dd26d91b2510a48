from __future__ import annotations

import logging as py_logging
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog

from mont_blanc_snow.config import LoggingConfig, app_config

# Libraries that log every request or job run at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "apscheduler")

_configured = False


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure structlog once per process; later calls are no-ops."""
    global _configured
    if _configured:
        return

    config = config or app_config.logging
    level = getattr(py_logging, str(config.level).upper(), py_logging.INFO)
    renderer = structlog.processors.JSONRenderer() if config.json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    py_logging.basicConfig(level=level)
    chatty_level = level if level <= py_logging.DEBUG else py_logging.WARNING
    for name in _CHATTY_LOGGERS:
        py_logging.getLogger(name).setLevel(chatty_level)
    _configured = True


def get_logger(name: str = __name__):
    if not _configured:
        setup_logging()
    return structlog.get_logger(name)


@contextmanager
def bind_trace(trace_id: str, **values) -> Iterator[None]:
    """Attach ``trace_id`` (and extra keys) to every event logged in this context."""
    with structlog.contextvars.bound_contextvars(trace_id=trace_id, **values):
        yield
