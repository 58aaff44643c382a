"""Logging setup for the wger routines server.

Everything goes through loguru. Records emitted with the standard library
(uvicorn's access and error loggers, httpx) are forwarded into loguru so the
server writes a single stream in a single format.
"""

import inspect
import logging
import sys
from pathlib import Path

from loguru import logger

from wger_routines.config.settings import Settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# Loggers that use the standard library and should end up in loguru
FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "httpx")


class InterceptHandler(logging.Handler):
    """Re-emit standard library log records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame, depth = inspect.currentframe(), 0
        while frame is not None and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logger(settings: Settings, rotation: str = "10 MB", retention: str = "7 days") -> None:
    """Configure loguru from settings and route standard library logging into it.

    Console output goes to stderr so it never mixes with tool results. A file
    sink is added only when ``LOG_FILE`` is set.
    """
    level = settings.log_level
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=FILE_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in FORWARDED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = []
        std_logger.propagate = True
    # httpx logs every request at INFO; the client already logs its own calls
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.info(f"Logging initialized (level={level}, file={settings.log_file or 'none'})")
