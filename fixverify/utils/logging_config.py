import logging
import sys
import os
from datetime import datetime


class ColoredFormatter(logging.Formatter):
    """Custom formatter to add colors to console output."""

    cyan = "\x1b[36m"
    green = "\x1b[32m"
    yellow = "\x1b[33m"
    red = "\x1b[31m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    format_str = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"

    FORMATS = {
        logging.DEBUG: cyan + format_str + reset,
        logging.INFO: green + format_str + reset,
        logging.WARNING: yellow + format_str + reset,
        logging.ERROR: red + format_str + reset,
        logging.CRITICAL: bold_red + format_str + reset
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        # Handle cases where level might be outside standard range
        if not log_fmt:
            log_fmt = self.format_str
        formatter = logging.Formatter(log_fmt, datefmt="%H:%M:%S")
        return formatter.format(record)


def setup_logging(level=logging.INFO, log_dir: str = "logs", color: bool = True):
    """
    Setup centralized logging configuration.

    Console output goes to stderr so it never interleaves with the build
    output echoed on stdout. A daily file under ``log_dir`` keeps the full
    history; pass ``log_dir=None`` to disable it.
    """
    root_logger = logging.getLogger()

    # Clear existing handlers to prevent duplicate logs
    if root_logger.handlers:
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    # 1. Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    if color and sys.stderr.isatty():
        console_handler.setFormatter(ColoredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(ColoredFormatter.format_str, datefmt="%H:%M:%S"))
    root_logger.addHandler(console_handler)

    # 2. File handler for persistence
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(
            os.path.join(log_dir, f"fixverify_{datetime.now().strftime('%Y%m%d')}.log"),
            encoding="utf-8",
        )
        file_fmt = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_fmt)
        root_logger.addHandler(file_handler)

    # Quiet the HTTP stack unless debugging
    for logger_name in ["httpx", "httpcore"]:
        logging.getLogger(logger_name).setLevel(max(level, logging.WARNING))

    logging.getLogger("fixverify").setLevel(level)
    root_logger.debug("Logging initialized (console%s).", " + file" if log_dir else "")
