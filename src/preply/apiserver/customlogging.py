"""Configures loguru as the single logging sink for the API server."""

import inspect
import logging
import sys

from loguru import logger

from preply.apiserver import flags

FRIENDLY_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <8}</level> "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
DEFAULT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} {level} {name}:{line} - {message}"

# Standard library loggers that are routed through loguru.
INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "sqlalchemy.engine", "httpx")


class InterceptHandler(logging.Handler):
    """Forwards standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller from where the logged message originated so loguru reports the right location.
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup(log_format: flags.LogFormat | None = None):
    """Replaces loguru's default sink with one matching the configured LogFormat."""
    log_format = log_format or flags.LOG_FORMAT
    logger.remove()
    match log_format:
        case flags.LogFormat.FRIENDLY:
            logger.add(sys.stderr, format=FRIENDLY_FORMAT, colorize=True, level="DEBUG")
        case flags.LogFormat.STRUCTURED_RAILWAY:
            logger.add(sys.stdout, serialize=True, level="INFO")
        case _:
            logger.add(sys.stderr, format=DEFAULT_FORMAT, level="INFO")

    logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO, force=True)
    for name in INTERCEPTED_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [InterceptHandler()]
        stdlib_logger.propagate = False
    if flags.LOG_SQL_APP_DB:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
