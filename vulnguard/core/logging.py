"""Logging setup shared by the CLI and the REST API.

Both front ends funnel into one stdout handler: structlog events from
``vulnguard.*`` and plain stdlib records (uvicorn, LiteLLM, httpx) are rendered
by the same ``ProcessorFormatter``.
"""

from __future__ import annotations

import logging
import logging.config
import os

import structlog

# Third-party loggers that drown scan output at INFO.
_QUIET_LOGGERS = {
    "uvicorn.access": "WARNING",
    "sqlalchemy.engine": "WARNING",
    "aiosqlite": "WARNING",
    "httpx": "WARNING",
    "LiteLLM": "WARNING",
}


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog and stdlib logging.

    ``level`` and ``fmt`` win over ``VULNGUARD_LOG_LEVEL`` and
    ``VULNGUARD_LOG_FORMAT`` (``console`` or ``json``). Defaults: INFO, console.
    """
    log_level = (level or os.environ.get("VULNGUARD_LOG_LEVEL") or "INFO").upper()
    log_format = (fmt or os.environ.get("VULNGUARD_LOG_FORMAT") or "console").lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Verbose runs show everything, provider chatter included.
    loggers: dict[str, dict] = {
        name: {"level": "NOTSET" if log_level == "DEBUG" else quiet}
        for name, quiet in _QUIET_LOGGERS.items()
    }
    loggers["vulnguard"] = {"level": log_level}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "vulnguard": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        _renderer(log_format),
                    ],
                },
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                    "formatter": "vulnguard",
                },
            },
            "root": {"handlers": ["stdout"], "level": log_level},
            "loggers": loggers,
        }
    )
