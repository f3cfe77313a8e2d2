import logging
import os
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False):
    """Set up diagnostic logging. Everything goes to stderr, stdout stays clean."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    # Console handler (with Rich)
    console = Console(stderr=True)
    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True
    )
    rich_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root_logger.addHandler(rich_handler)

    # Configure specific loggers to be less verbose if needed
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug("Logger initialized")


def get_logger(name: str):
    """Get a logger instance."""
    return logging.getLogger(name)


logger = get_logger(__name__)


def _single_line(text: str) -> str:
    return " ".join(text.splitlines())


def format_entry(kind: str, query: str, result: str, when: Optional[datetime] = None) -> str:
    """Formats one query log line, without the trailing newline."""
    timestamp = (when or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    return f"[{timestamp}] {kind} | query: {_single_line(query)} | result: {_single_line(result)}"


class QueryLogger:
    """
    Appends one line per answered query to a text file.

    The log is optional and write-only: with no path configured nothing is
    written, and a failed write never affects the command's outcome.
    """

    def __init__(self, log_path: Optional[str]):
        """Initialize the query logger."""
        self.log_path = log_path

    def log_entry(self, kind: str, query: str, result: str):
        """Logs a query and its result."""
        if not self.log_path:
            return

        try:
            log_dir = os.path.dirname(self.log_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(format_entry(kind, query, result) + "\n")
        except OSError as e:
            logger.warning(f"Failed to write to query log {self.log_path}: {e}")
