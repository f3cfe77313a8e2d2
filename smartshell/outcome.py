from dataclasses import dataclass
from typing import Any, Callable, Union

from .errors import InfrastructureError, ModelRefusal


@dataclass(frozen=True)
class Success:
    """The model produced a command or explanation."""

    text: str


@dataclass(frozen=True)
class Failure:
    """Configuration, transport, API or schema failure."""

    message: str


@dataclass(frozen=True)
class Refusal:
    """The model understood the request but declined it."""

    message: str


Outcome = Union[Success, Failure, Refusal]


def capture_outcome(func: Callable[..., str], *args: Any, **kwargs: Any) -> Outcome:
    """Runs ``func`` and classifies its result or exception."""
    try:
        return Success(func(*args, **kwargs))
    except ModelRefusal as e:
        return Refusal(str(e))
    except InfrastructureError as e:
        return Failure(str(e))
