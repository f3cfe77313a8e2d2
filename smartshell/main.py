import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .cli import run_cli
from .handlers import EXIT_FAILURE

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130  # 128 + SIGINT


def main(argv: Optional[List[str]] = None):
    """
    Console script entry point.

    Whatever is printed here ends up in the zsh widget's message line, so
    messages are single lines without leading blank lines.
    """
    # Existing environment wins over .env, the widget exports the provider.
    load_dotenv(override=False)
    try:
        sys.exit(run_cli(argv))
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        print("Operation cancelled by user")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as e:
        logger.exception(f"Unhandled exception: {str(e)}")
        print(f"Error: {str(e)}")
        sys.exit(EXIT_FAILURE)
