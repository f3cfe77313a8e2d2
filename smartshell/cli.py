import argparse
import logging
from typing import List, Optional

from . import __version__
from .config import Config
from .handlers import handle_complete, handle_explain
from .logger import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smartshell",
        description="smartshell: LLM-powered zsh CLI helper. "
                    "Turns a natural language request into a zsh command, or explains one.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print diagnostic logs on stderr.")
    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=True)

    # 'complete' command
    complete_parser = subparsers.add_parser(
        "complete", help="Generate a zsh command from a query or modify an existing one."
    )
    complete_parser.add_argument("-b", "--buffer", type=str, help="The command currently on the command line.")
    complete_parser.add_argument("-q", "--query", type=str, help="What the command should do. Asked interactively if omitted.")

    # 'explain' command
    explain_parser = subparsers.add_parser("explain", help="Explain the current zsh command.")
    explain_parser.add_argument("-b", "--buffer", type=str, help="The command to explain.")

    return parser


def run_cli(argv: Optional[List[str]] = None, config: Optional[Config] = None) -> int:
    """
    Parses command-line arguments, runs the command and returns its exit code.

    Args:
        argv: The command-line arguments, ``sys.argv[1:]`` when None.
        config: Configuration to use, read from the environment when None.
    """
    args = build_parser().parse_args(argv)

    config = config or Config()
    setup_logging(verbose=args.verbose or config.verbose)
    logger.debug(f"Loaded configuration: {config}")

    if args.command == "complete":
        return handle_complete(config, buffer=args.buffer, query=args.query)
    return handle_explain(config, buffer=args.buffer)
