"""Exception types raised while turning a request into an answer.

Every ``InfrastructureError`` carries the message that is shown to the user,
prefixed with the kind of failure (``Request failed: ...``, ``API error: ...``).
``ModelRefusal`` is kept apart: the model understood the request and declined it.
"""


class SmartshellError(Exception):
    """Base class for all smartshell errors."""


class InfrastructureError(SmartshellError):
    """Something went wrong before a usable answer came back from the API."""


class ConfigurationError(InfrastructureError):
    """Invalid configuration, detected before any network attempt."""


class MissingCredentialError(ConfigurationError):
    """No API key could be resolved for the selected provider."""


class RequestFailedError(InfrastructureError):
    """The HTTP request itself failed (connection, TLS, timeout)."""


class APIError(InfrastructureError):
    """The provider answered with an explicit error object."""


class InvalidResponseError(InfrastructureError):
    """The response body or its structured payload could not be used."""


class BackgroundCallError(InfrastructureError):
    """The worker thread ended without delivering a result."""


class ModelRefusal(SmartshellError):
    """The model flagged the request as not a valid shell task.

    The message is the model's own explanation.
    """
