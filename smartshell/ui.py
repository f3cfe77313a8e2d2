import logging
from typing import IO, Optional

from rich.console import Console

logger = logging.getLogger(__name__)

# Only used for the interactive query prompt. Answers are written with plain
# print() because rich rewrites tabs and control characters.
console = Console(highlight=False, markup=False, emoji=False, soft_wrap=True)

SPINNER_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")
TTY_PATH = "/dev/tty"


def open_tty(path: str = TTY_PATH) -> Optional[IO[str]]:
    """Opens the controlling terminal for writing, or returns None if there is none."""
    try:
        return open(path, "w", encoding="utf-8")
    except OSError as e:
        logger.debug(f"Cannot open {path}, spinner disabled: {e}")
        return None


class TerminalSpinner:
    """
    A one-character spinner drawn on the controlling terminal.

    Drawing is best-effort: without a terminal, or once a write fails, every
    call is a no-op. The spinner never touches stdout.
    """

    def __init__(self, stream: Optional[IO[str]] = None, frames=SPINNER_FRAMES):
        self.stream = stream
        self.frames = frames

    @classmethod
    def for_tty(cls, path: str = TTY_PATH) -> "TerminalSpinner":
        return cls(open_tty(path))

    def _write(self, text: str):
        if self.stream is None:
            return
        try:
            self.stream.write(text)
            self.stream.flush()
        except (OSError, ValueError) as e:
            logger.debug(f"Spinner write failed, disabling it: {e}")
            self.stream = None

    def render(self, index: int):
        self._write(f"\r{self.frames[index % len(self.frames)]}")

    def clear(self):
        self._write("\r\x1b[K")

    def close(self):
        if self.stream is not None:
            try:
                self.stream.close()
            except OSError:
                pass
            self.stream = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
