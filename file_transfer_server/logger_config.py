import logging
import os
import sys
from pathlib import Path
from typing import Optional

from file_transfer_server import config

LOGGER_NAME = "file_transfer_server"
LOG_FILE_NAME = "file_transfer_server.log"

FILE_FORMAT = '%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def _file_handler(log_dir: Path) -> logging.FileHandler:
    # Create logs directory if it doesn't exist
    log_dir.mkdir(exist_ok=True, parents=True)

    file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return file_handler


def setup_logger(log_dir: Optional[str] = None):
    """Return the server logger, attaching its handlers on first use.

    Passing log_dir on a later call moves the log file there.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logs_dir = Path(log_dir or config.LOG_DIR)

    # Every module asks for the logger, only the first call attaches handlers
    if logger.handlers:
        if log_dir is not None:
            for handler in logger.handlers[:]:
                if isinstance(handler, logging.FileHandler):
                    if handler.baseFilename == os.path.abspath(logs_dir / LOG_FILE_NAME):
                        return logger
                    logger.removeHandler(handler)
                    handler.close()
            logger.addHandler(_file_handler(logs_dir))
        return logger

    logger.setLevel(logging.DEBUG)

    # File handler (for detailed logging)
    logger.addHandler(_file_handler(logs_dir))

    # Console handler (for basic logging)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    return logger
