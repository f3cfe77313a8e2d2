import logging
from typing import Optional

from .api import get_client
from .background import call_in_background
from .config import Config
from .errors import ConfigurationError
from .logger import QueryLogger
from .outcome import Failure, Outcome, Refusal, Success, capture_outcome
from .prompts import Request, build_complete_request, build_explain_request, read_query
from .ui import TerminalSpinner, console

logger = logging.getLogger(__name__)

COMMENT_MARKER = "#"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_REFUSED = 2


def request_outcome(config: Config, request: Request, spinner: Optional[TerminalSpinner] = None) -> Outcome:
    """Sends the request on a worker thread and classifies what came back."""
    try:
        config.validate()
        client = get_client(config)
    except ConfigurationError as e:
        return Failure(str(e))

    if spinner is None:
        with TerminalSpinner.for_tty() as tty_spinner:
            return capture_outcome(call_in_background, client.call, request, spinner=tty_spinner)
    return capture_outcome(call_in_background, client.call, request, spinner=spinner)


def dispatch_complete(outcome: Outcome, query: str, query_logger: QueryLogger) -> int:
    """
    Prints the outcome of a completion and returns the exit code.

    A result starting with a comment marker is an explanation rather than a
    command, so it exits 1 to keep the shell from inserting it as-is.
    """
    if isinstance(outcome, Success):
        query_logger.log_entry("complete", query, outcome.text)
        print(outcome.text)
        return EXIT_FAILURE if outcome.text.startswith(COMMENT_MARKER) else EXIT_OK

    if isinstance(outcome, Refusal):
        query_logger.log_entry("complete", query, f"REFUSED: {outcome.message}")
        print(f"{COMMENT_MARKER} {outcome.message}")
        return EXIT_REFUSED

    query_logger.log_entry("complete", query, f"ERROR: {outcome.message}")
    print(outcome.message)
    return EXIT_FAILURE


def dispatch_explain(outcome: Outcome, buffer: str, query_logger: QueryLogger) -> int:
    """Prints the outcome of an explanation and returns the exit code."""
    if isinstance(outcome, Success):
        query_logger.log_entry("explain", buffer, outcome.text)
        print(f"{COMMENT_MARKER} {outcome.text}")
        return EXIT_OK

    query_logger.log_entry("explain", buffer, f"ERROR: {outcome.message}")
    print(outcome.message)
    return EXIT_FAILURE


def handle_complete(config: Config, buffer: Optional[str] = None, query: Optional[str] = None,
                    spinner: Optional[TerminalSpinner] = None) -> int:
    """Handler for the 'complete' command."""
    if query is None:
        query = read_query(console)
    if not query:
        print("Completion aborted (empty input).")
        return EXIT_OK

    request = build_complete_request(query, buffer, config.provider)
    logger.debug(f"Complete prompt: {request.prompt}")
    outcome = request_outcome(config, request, spinner)
    return dispatch_complete(outcome, query, QueryLogger(config.log_path))


def handle_explain(config: Config, buffer: Optional[str] = None,
                   spinner: Optional[TerminalSpinner] = None) -> int:
    """Handler for the 'explain' command."""
    if not buffer:
        print("Nothing to explain.")
        return EXIT_OK

    request = build_explain_request(buffer, config.provider)
    outcome = request_outcome(config, request, spinner)
    return dispatch_explain(outcome, buffer, QueryLogger(config.log_path))
