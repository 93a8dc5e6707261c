"""Logging setup shared by every featurecraft module"""
import logging
import os
import sys

from colorama import Fore, Style, init as colorama_init

colorama_init()

LEVEL_COLORS = {
    logging.DEBUG: Fore.CYAN,
    logging.INFO: Fore.GREEN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.MAGENTA,
}


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name for console output"""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno, '')
        original = record.levelname
        record.levelname = f"{color}{original}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logger(name: str = "featurecraft", level: str = None) -> logging.Logger:
    """
    Get a logger with a coloured console handler attached.

    The level defaults to the FEATURECRAFT_LOG_LEVEL environment variable
    (INFO when unset). Handlers are only attached the first time a logger
    is requested, so repeated calls are safe.
    """
    logger = logging.getLogger(name)
    level = level or os.environ.get('FEATURECRAFT_LOG_LEVEL', 'INFO')
    logger.setLevel(level.upper())

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            ColoredFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(console_handler)
        logger.propagate = False

    return logger
