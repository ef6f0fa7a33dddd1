"""Logging configuration for the field client."""
import logging
import sys
import os


class ColorFormatter(logging.Formatter):
    """Color-coded formatter for console output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging():
    """Setup console logging for the client.

    The level comes from ``LOG_LEVEL``; colours are used on a terminal
    unless ``LOG_COLORS`` is false.
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    use_colors = os.getenv('LOG_COLORS', 'true').lower() in ('true', '1', 'yes')
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    if use_colors and sys.stdout.isatty():
        console_handler.setFormatter(ColorFormatter('%(asctime)s %(levelname)s %(name)-25s %(message)s'))
    else:
        console_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)-8s %(name)-25s %(message)s'))

    logger.handlers.clear()
    logger.addHandler(console_handler)

    logging.getLogger('urllib3').setLevel(logging.WARNING)

    logger.info(f"Client logging initialized (level: {log_level_str})")
    return logger
