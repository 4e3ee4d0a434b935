"""
Logging configuration
"""

import sys
import logging
from pathlib import Path

from loguru import logger


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside of the logging module
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = None):
    """Install console and rotating file sinks."""
    from meeting_copilot.config import settings

    level = level or ("DEBUG" if settings.debug else "INFO")

    logger.remove()

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )
    logger.configure(extra={"name": "root"})

    logger.add(
        sys.stdout,
        format=log_format,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=settings.debug,
    )

    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_dir / "meeting_copilot.log",
        format=log_format,
        level="INFO",
        rotation="1 day",
        retention="30 days",
        compression="zip",
        backtrace=True,
        diagnose=False,
    )

    logger.add(
        log_dir / "meeting_copilot_error.log",
        format=log_format,
        level="ERROR",
        rotation="1 week",
        retention="90 days",
        compression="zip",
        backtrace=True,
        diagnose=False,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine"]:
        logging_logger = logging.getLogger(logger_name)
        logging_logger.handlers = [InterceptHandler()]

    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str):
    """Return a loguru logger bound to ``name``."""
    return logger.bind(name=name)


api_logger = get_logger("api")
service_logger = get_logger("service")
db_logger = get_logger("database")
storage_logger = get_logger("storage")
mail_logger = get_logger("mail")
live_logger = get_logger("live_store")
analysis_logger = get_logger("analysis")
