"""Logging setup for scripts and applications using floorfusion.

Library modules only create module-level loggers; handlers are attached
here, by the application, never on import.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    logger_name: str = "floorfusion",
) -> logging.Logger:
    """
    Attach a console handler, and optionally a rotating file handler.

    Calling it again replaces the handlers installed by a previous call.

    Args:
        level: Logging level (name or number).
        log_file: Path of a log file rotated at 10 MiB, 5 backups kept.
        logger_name: Logger to configure. Default: the package root logger.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        rh = RotatingFileHandler(log_path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT)
        rh.setFormatter(formatter)
        logger.addHandler(rh)

    return logger
