import platform
from dataclasses import dataclass
from typing import Optional

from rich.console import Console

COMPLETE_INTRO = (
    "Generate a zsh command. Use only ASCII characters (straight quotes, no curly quotes). "
    "If the request is unclear or not a valid shell task, set error=true and put an explanation in result."
)

EXPLAIN_INTRO = "Explain zsh commands. Return a short, single-line explanation in the result field."

QUERY_PROMPT = "> Query: "


@dataclass(frozen=True)
class Request:
    """A single question for the model."""

    intro: str
    prompt: str
    provider: str


def os_context(system: Optional[str] = None) -> str:
    """Describes the host OS for the system instruction, or "" when unrecognized."""
    system = system or platform.system()
    if system == "Darwin":
        return "The target system is macOS."
    if system == "Linux":
        return "The target system is Linux."
    return ""


def _with_context(intro: str, system: Optional[str]) -> str:
    context = os_context(system)
    return f"{intro} {context}" if context else intro


def build_complete_request(query: str, buffer: Optional[str], provider: str, system: Optional[str] = None) -> Request:
    """
    Builds the request that asks for a new command or a change to an existing one.

    Args:
        query: What the user wants, in natural language.
        buffer: The command currently on the command line, if any.
        provider: The provider the request is meant for.
        system: Platform name, defaults to the running OS.
    """
    if buffer:
        prompt = f"Alter zsh command `{buffer}` to comply with query `{query}`"
    else:
        prompt = query
    return Request(intro=_with_context(COMPLETE_INTRO, system), prompt=prompt, provider=provider)


def build_explain_request(buffer: str, provider: str, system: Optional[str] = None) -> Request:
    """Builds the request that asks for a one-line explanation of a command."""
    return Request(intro=_with_context(EXPLAIN_INTRO, system), prompt=buffer, provider=provider)


def read_query(console: Console) -> str:
    """Asks for a query on stdin. End of input counts as an empty query."""
    try:
        return console.input(QUERY_PROMPT).strip()
    except EOFError:
        return ""
