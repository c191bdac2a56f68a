"""structlog setup shared by the daemon and the CLI."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from anifunnel.config import LoggingConfig

# Third-party loggers that are chatty at INFO. httpx logs every AniList call.
NOISY_LOGGERS = ("httpx", "httpcore", "multipart")

SHARED_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def _renderer(log_format: str):
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def _handlers(config: LoggingConfig, level: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if config.output:
        log_path = Path(config.output)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))
        except OSError as e:
            # Console logging still works without the file.
            print(f"Warning: Could not create log file {config.output}: {e}", file=sys.stderr)

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        config: Logging configuration
    """
    structlog.configure(
        processors=[*SHARED_PROCESSORS, _renderer(config.format)],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, config.level.upper())
    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=_handlers(config, level),
        force=True,
    )

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, usually with ``__name__``."""
    return structlog.get_logger(name)
