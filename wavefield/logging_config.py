"""
Logging setup for the simulation engine, its runner and its service.

Everything under the ``wavefield`` namespace goes to the console and,
optionally, to a size-rotated log file so long headless runs cannot grow
an unbounded log.
"""
import logging
import logging.handlers
import os
import sys
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(threadName)s] %(name)s %(levelname)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"
MAX_LOG_BYTES = 1024 * 1024
LOG_BACKUPS = 5


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configures the 'wavefield' logger and returns it.

    Args:
        level: Logging level as a number or a name such as ``"debug"``.
        log_file: Optional path of a rotating log file; its directory is
            created if missing.
    """
    if isinstance(level, str):
        name = level
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")

    logger = logging.getLogger("wavefield")
    logger.setLevel(level)
    # uvicorn installs root handlers of its own
    logger.propagate = False

    # Clear existing handlers to avoid duplication on reload
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug(f"Logging initialized at {logging.getLevelName(level)}")
    return logger
