"""Console + rotating file logging for scrape runs."""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional, Union

LOGGER_NAME = "film_scraper"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(log_dir: Optional[str] = "logs", level: Union[int, str] = logging.INFO,
                 console: bool = True) -> logging.Logger:
    """Configure the package logger once; later calls only adjust the level.

    ``log_dir=None`` disables the file handler (handy for one-off CLI calls).
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if console:
        ch = logging.StreamHandler()
        ch.setFormatter(fmt)
        logger.addHandler(ch)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        # 10MB per file, keep 5
        fh = RotatingFileHandler(
            os.path.join(log_dir, "film_scraper.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger
