import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

PACKAGE_LOGGER_NAME = "image_classification"


def setup_logger(name: str, level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Set up a logger with the specified name and logging level."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(name)
    logger.setLevel(level)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    if not logger.hasHandlers():
        logger.addHandler(handler)

    return logger


def set_verbosity(verbose: bool) -> None:
    """Switch every package logger (and its handlers) to DEBUG or back to INFO."""
    level = logging.DEBUG if verbose else logging.INFO
    for name, logger in logging.root.manager.loggerDict.items():
        if not isinstance(logger, logging.Logger):
            continue
        if name != PACKAGE_LOGGER_NAME and not name.startswith(
            PACKAGE_LOGGER_NAME + "."
        ):
            continue
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
