"""
logging_config.py

This module configures the logging for the entire application.
It sets up a structured logging format that includes a timestamp, log level,
logger name, and the message. It also configures file-based logging with
log rotation to manage file sizes.
"""
import logging
from logging.handlers import RotatingFileHandler
import sys
import asyncio
from typing import Optional

import config

class AsyncFileHandler(logging.Handler):
    """
    A logging handler that writes to a file in a separate thread while an
    asyncio loop is running (the interactive console), and synchronously otherwise.

    Off-loop writes are kept in `pending` until they finish so none of them is
    garbage-collected mid-write.
    """
    def __init__(self, filename, mode='a', maxBytes=0, backupCount=0, encoding=None, delay=False):
        super().__init__()
        self._handler = RotatingFileHandler(filename, mode, maxBytes, backupCount, encoding, delay)
        self.pending: set[asyncio.Task[None]] = set()

    def setFormatter(self, fmt):
        super().setFormatter(fmt)
        self._handler.setFormatter(fmt)

    def emit(self, record):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running event loop.
            self._handler.emit(record)
            return
        task = loop.create_task(asyncio.to_thread(self._handler.emit, record))
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)

    def close(self):
        self._handler.close()
        super().close()

class CustomFormatter(logging.Formatter):
    """
    A log formatter that adds color codes to log levels for console output.
    """
    grey = "\x1b[38;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s (%(filename)s:%(lineno)d)"

    FORMATS = {
        logging.DEBUG: grey + format_str + reset,
        logging.INFO: grey + format_str + reset,
        logging.WARNING: yellow + format_str + reset,
        logging.ERROR: red + format_str + reset,
        logging.CRITICAL: bold_red + format_str + reset
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)

def setup_logging(level: Optional[str] = None, log_to_file: bool = True, log_path: Optional[str] = None):
    """
    Sets up logging for the entire application.

    This function configures:
    - A console handler on stderr with colored output, so results printed on
      stdout stay clean.
    - A rotating file handler (`config.LOG_PATH` unless `log_path` is given).
    - Clears any existing handlers to prevent duplicate log entries.
    """
    level_name = (level or config.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear() # Prevent duplicate logs if called multiple times.

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(CustomFormatter())
    root_logger.addHandler(console_handler)

    # --- File Handler ---
    if log_to_file:
        file_handler = AsyncFileHandler(
            log_path or config.LOG_PATH,
            maxBytes=config.LOG_MAX_BYTES,
            backupCount=config.LOG_BACKUP_COUNT
        )
        file_handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
        root_logger.addHandler(file_handler)

    root_logger.debug(f"Logging configured at level {logging.getLevelName(log_level)}.")
