"""Logging configuration for Family Vault."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

from family_vault.config import get_settings

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.processors.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.dev.set_exc_info,
    structlog.processors.TimeStamper(fmt="iso"),
]


def setup_logging() -> None:
    """Configure structured logging.

    Console output is rendered for humans in development and as JSON
    otherwise.  When ``log_to_file`` is enabled a rotating JSON log file is
    added; failures to create it fall back to console-only logging.
    """
    settings = get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=log_level, handlers=[])
    root = logging.getLogger()
    root.setLevel(log_level)

    console_renderer = (
        structlog.dev.ConsoleRenderer(colors=True)
        if settings.is_development
        else structlog.processors.JSONRenderer()
    )
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                console_renderer,
            ],
            foreign_pre_chain=_SHARED_PROCESSORS,
        )
    )
    root.addHandler(console_handler)

    file_logging = settings.log_to_file
    if file_logging:
        try:
            Path(settings.log_directory).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            file_logging = False
            root.warning("log directory unavailable, file logging disabled: %s", exc)

    if file_logging:
        try:
            file_handler = RotatingFileHandler(
                settings.log_file_path,
                maxBytes=settings.log_file_max_bytes,
                backupCount=settings.log_file_backup_count,
                encoding="utf-8",
            )
        except OSError as exc:
            root.warning("log file unavailable, file logging disabled: %s", exc)
        else:
            file_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processors=[
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        structlog.processors.JSONRenderer(),
                    ],
                    foreign_pre_chain=_SHARED_PROCESSORS,
                )
            )
            root.addHandler(file_handler)

    # Reduce noise from the database driver
    logging.getLogger("asyncpg").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)
