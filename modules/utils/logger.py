"""
Logging setup plus a small recorder for confirmed letters.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure console (and optional rotating file) logging."""
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
    date_format = "%H:%M:%S"

    numeric_level = getattr(logging, str(level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class LetterLogger:
    """Records confirmed letters and word changes.

    Subscribe ``on_letter_confirmed`` and ``on_word_cleared`` to the event
    bus to keep a session history.
    """

    def __init__(self):
        self.logger = logging.getLogger("spelling_events")
        self._history = []

    def on_letter_confirmed(self, letter, appended=True, word="", confidence=None, **_):
        entry = {
            "timestamp": time.time(),
            "letter": letter,
            "appended": appended,
            "word": word,
            "confidence": confidence,
        }
        self._history.append(entry)
        if appended:
            self.logger.info("Letter: %-2s | Word: %s", letter, word)
        else:
            self.logger.info("Letter: %-2s | repeated, not appended", letter)

    def on_word_cleared(self, **_):
        self.logger.info("Word cleared")

    def get_history(self, last_n=None):
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()

    @property
    def total_letters(self):
        return sum(1 for e in self._history if e["appended"])


def log_timing(func):
    """Decorator to log function execution time at DEBUG."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
