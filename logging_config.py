"""
Logging configuration for the quote generator.
Call setup_logging() once at app startup.
"""
import logging
import os
from datetime import datetime


class HumanFormatter(logging.Formatter):
    """Readable one-line console format."""

    def format(self, record):
        ts = datetime.now().strftime("%H:%M:%S")
        line = f"{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level=None):
    """
    Configure the root logger.

    Args:
        level: Override log level (default: from LOG_LEVEL env or INFO)
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    level = str(level).upper()

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(HumanFormatter())
    root.addHandler(console)

    # Streamlit's own loggers are noisy at DEBUG
    logging.getLogger("streamlit").setLevel(logging.WARNING)
    return root
