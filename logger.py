# logger.py
import logging
import sys

from config import LOG_FILE

_logger = logging.getLogger("autoshutdown")


def _setup():
    if _logger.handlers:
        return
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(message)s", "%Y-%m-%d %H:%M:%S")
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(fmt)
    _logger.addHandler(console)
    if LOG_FILE:
        try:
            file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
        except OSError as e:
            _logger.warning(f"[!] Cannot open log file {LOG_FILE}: {e}")
        else:
            file_handler.setFormatter(fmt)
            _logger.addHandler(file_handler)
    _logger.setLevel(logging.INFO)


def log(message, level=logging.INFO):
    """Write a timestamped line to stdout and the log file."""
    _setup()
    _logger.log(level, message)
