# catalog/core/logging.py
import logging
import sys
from typing import Iterable, Union
import colorlog

LOG_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s [%(name)s]%(reset)s %(message)s"

# HTTP/cache clients log every connection at DEBUG; keep them at WARNING
QUIET_LOGGERS = ("aiohttp", "aiohttp.access", "aiohttp.client", "redis", "uvicorn.access")


def configure_logging(
    level: Union[int, str] = logging.INFO,
    quiet: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """Install a single colored stdout handler on the root logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            LOG_FORMAT,
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    logging.getLogger("uvicorn.error").setLevel(level)
    for name in quiet:
        logging.getLogger(name).setLevel(max(logging.WARNING, level))
