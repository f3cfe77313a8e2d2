import json
import logging
from typing import Any, Dict, Optional

import requests

from .config import Config
from .errors import (
    APIError,
    ConfigurationError,
    InvalidResponseError,
    MissingCredentialError,
    ModelRefusal,
    RequestFailedError,
)
from .prompts import Request

# Configure logging
logger = logging.getLogger(__name__)

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "result": {"type": "string", "description": "The command or explanation"},
        "error": {
            "type": "boolean",
            "description": "Set to true if the request is unclear, impossible, or not a valid shell task",
        },
    },
    "required": ["result", "error"],
    "additionalProperties": False,
}


class ProviderClient:
    """
    Base class for the LLM providers.

    A subclass builds the provider-specific request body and knows where the
    structured ``{result, error}`` payload sits in the response. Everything
    else (sending, error mapping, reading the payload) is shared.
    """

    name = ""
    display_name = ""
    url = ""
    max_tokens = 256

    def __init__(self, api_key: Optional[str], model: str, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        """
        Initializes the client.

        Args:
            api_key: The provider API key. A missing key fails the call, not the constructor.
            model: The model identifier sent with every request.
            timeout: Request timeout in seconds, None waits indefinitely.
            session: HTTP session to use, mainly for tests.
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def call(self, request: Request) -> str:
        """
        Sends the request and returns the model's result text.

        Raises:
            MissingCredentialError: No API key is configured.
            RequestFailedError: The HTTP request could not be completed.
            InvalidResponseError: The body or structured payload is unusable.
            APIError: The provider returned an error object.
            ModelRefusal: The model set ``error`` to true.
        """
        if not self.api_key:
            raise MissingCredentialError(f"{self.display_name} API key not set")

        data = self._post(self.build_payload(request))
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            logger.error(f"{self.display_name} API error: {error['message']}")
            raise APIError(f"API error: {error['message']}")

        payload = self.extract_payload(data)
        return self._read_payload(payload)

    def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"Sending request to {self.display_name} ({self.model})")
        try:
            response = self.session.post(self.url, headers=self.headers(), json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Request to {self.url} failed: {e}")
            raise RequestFailedError(f"Request failed: {e}")

        logger.debug(f"{self.display_name} responded with HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseError(f"Invalid response: {e}")
        if not isinstance(data, dict):
            raise InvalidResponseError("Invalid response: expected a JSON object")
        return data

    @staticmethod
    def _read_payload(payload: Dict[str, Any]) -> str:
        result = payload.get("result")
        if not isinstance(result, str):
            result = ""
        is_error = payload.get("error")
        if is_error is True:
            raise ModelRefusal(result)
        return result

    def headers(self) -> Dict[str, str]:
        raise NotImplementedError

    def build_payload(self, request: Request) -> Dict[str, Any]:
        raise NotImplementedError

    def extract_payload(self, data: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


class OpenAIClient(ProviderClient):
    """Chat completions with a strict JSON schema response format."""

    name = "openai"
    display_name = "OpenAI"
    url = "https://api.openai.com/v1/chat/completions"
    max_tokens = 256

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def build_payload(self, request: Request) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": 0,
            "messages": [
                {"role": "system", "content": request.intro},
                {"role": "user", "content": request.prompt},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "response", "strict": True, "schema": RESPONSE_SCHEMA},
            },
        }

    def extract_payload(self, data: Dict[str, Any]) -> Dict[str, Any]:
        # The structured answer arrives as a JSON string inside the message content.
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str):
            raise InvalidResponseError("Missing content in response")

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON response: '{content}'. Error: {e}")
            raise InvalidResponseError(f"Failed to parse response JSON: {e}")
        if not isinstance(payload, dict):
            raise InvalidResponseError("Failed to parse response JSON: expected an object")
        return payload


class ClaudeClient(ProviderClient):
    """Anthropic messages API, forced to answer through a single tool call."""

    name = "claude"
    display_name = "Anthropic"
    url = "https://api.anthropic.com/v1/messages"
    api_version = "2023-06-01"
    max_tokens = 512
    tool_name = "structured_response"

    def headers(self) -> Dict[str, str]:
        return {"x-api-key": self.api_key, "anthropic-version": self.api_version}

    def build_payload(self, request: Request) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": 0,
            "system": request.intro,
            "messages": [{"role": "user", "content": request.prompt}],
            "tools": [
                {
                    "name": self.tool_name,
                    "description": "Return the structured response",
                    "input_schema": RESPONSE_SCHEMA,
                }
            ],
            "tool_choice": {"type": "tool", "name": self.tool_name},
        }

    def extract_payload(self, data: Dict[str, Any]) -> Dict[str, Any]:
        content = data.get("content")
        if isinstance(content, list):
            for block in content:
                if isinstance(block, dict) and block.get("type") == "tool_use":
                    payload = block.get("input")
                    if isinstance(payload, dict):
                        return payload
                    raise InvalidResponseError("Failed to parse response JSON: tool input is not an object")
        raise InvalidResponseError("Missing content in response")


PROVIDERS = {
    OpenAIClient.name: OpenAIClient,
    ClaudeClient.name: ClaudeClient,
}


def get_client(config: Config) -> ProviderClient:
    """Creates the client for the configured provider."""
    client_class = PROVIDERS.get(config.provider)
    if client_class is None:
        raise ConfigurationError(f"Unknown provider: {config.provider}")
    return client_class(api_key=config.api_key, model=config.model, timeout=config.timeout)


