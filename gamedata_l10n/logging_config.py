import logging
import os
import sys
from logging import Handler
from typing import Optional

# tqdm owns the console while the diff pipeline shows progress bars.
from tqdm import tqdm

PACKAGE_LOGGER_NAME = "gamedata_l10n"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


class TqdmLoggingHandler(Handler):
    """
    Console handler for the package logger.

    ``gamedata-diff`` shows a tqdm bar while it copies new raw files and logs one
    "Copied: ..." line per file. Records go through tqdm.write on stderr, so
    they land above the bar instead of tearing it.
    """
    def __init__(self, level=logging.NOTSET):
        super().__init__(level)

    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg, file=sys.stderr)
            self.flush()
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception:
            self.handleError(record)


def setup_logger(log_level_str: str, log_file_path: Optional[str], log_to_console: bool) -> logging.Logger:
    """
    Configure the package logger.

    Every module logs through ``logging.getLogger(__name__)``, so configuring the
    ``gamedata_l10n`` logger here covers the whole package. Records are written to
    a log file (when a path is given) and, optionally, to stderr through the
    tqdm-aware handler.

    Args:
        log_level_str: The logging level as a string (e.g., 'INFO', 'DEBUG').
        log_file_path: The path to the log file, or None to skip file logging.
        log_to_console: Whether to also log to the console.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)

    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Reconfiguring must not stack handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT)

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if log_to_console:
        tqdm_handler = TqdmLoggingHandler()
        tqdm_handler.setFormatter(formatter)
        logger.addHandler(tqdm_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
