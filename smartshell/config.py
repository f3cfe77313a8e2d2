import os
import toml
import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Dict, Mapping, Optional

from .credentials import resolve_api_key
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = os.path.join(os.path.expanduser("~/.config/smartshell"), "config.toml")
DEFAULT_PROVIDER = "openai"
DEFAULT_TIMEOUT = 60.0
DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-5-20250929"

KNOWN_PROVIDERS = ("openai", "claude")

# Keys that may only come from the environment, never from the config file.
_SECRET_KEYS = ("SMSH_API_KEY", "SMSH_OPENAI_API_KEY", "OPENAI_API_KEY", "SMSH_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _parse_timeout(value: Any) -> Optional[float]:
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in ("", "0", "none", "off"):
        return None
    try:
        timeout = float(text)
    except ValueError:
        raise ConfigurationError(f"Invalid timeout: {value}")
    return timeout if timeout > 0 else None


@dataclass
class Config:
    """Configuration for one smartshell invocation.

    Values are read once, from the environment first, then the TOML config
    file, then the defaults below. The API key is resolved lazily the first
    time it is needed.
    """

    environ: Mapping[str, str] = field(default_factory=lambda: dict(os.environ), repr=False)
    config_file: Optional[str] = None
    _file_config: Dict = field(init=False, repr=False)

    provider: str = field(init=False)
    log_path: Optional[str] = field(init=False)
    timeout_setting: Any = field(init=False)
    verbose: bool = field(init=False)
    openai_model: str = field(init=False)
    anthropic_model: str = field(init=False)
    keychain_service: Optional[str] = field(init=False)
    keychain_account: Optional[str] = field(init=False)

    def __post_init__(self):
        """Post-initialization to set up dependent fields."""
        if self.config_file is None:
            self.config_file = os.path.expanduser(self.environ.get("SMSH_CONFIG") or DEFAULT_CONFIG_FILE)
        self._file_config = self._load_config_from_file()

        self.provider = str(self._get_config("SMSH_LLM_PROVIDER", DEFAULT_PROVIDER)).strip().lower() or DEFAULT_PROVIDER
        log_path = self._get_config("SMSH_LOG")
        self.log_path = os.path.expanduser(log_path) if log_path else None
        self.timeout_setting = self._get_config("SMSH_TIMEOUT", DEFAULT_TIMEOUT)
        self.verbose = _parse_bool(self._get_config("SMSH_VERBOSE", False))
        self.openai_model = self._get_config("SMSH_OPENAI_MODEL", DEFAULT_OPENAI_MODEL)
        self.anthropic_model = self._get_config("SMSH_ANTHROPIC_MODEL", DEFAULT_ANTHROPIC_MODEL)

        prefix = "SMSH_ANTHROPIC" if self.provider == "claude" else "SMSH_OPENAI"
        self.keychain_service = self._get_config(f"{prefix}_KEYCHAIN_SERVICE")
        self.keychain_account = self._get_config(f"{prefix}_KEYCHAIN_ACCOUNT")

    def _load_config_from_file(self) -> dict:
        """Loads configuration from the TOML file, if there is one."""
        if not os.path.exists(self.config_file):
            return {}
        try:
            with open(self.config_file, "r") as f:
                return toml.load(f)
        except (toml.TomlDecodeError, IOError) as e:
            logger.warning(f"Could not read config file at {self.config_file}. Error: {e}")
            return {}

    def _get_config(self, key: str, default: Optional[Any] = None) -> Any:
        """
        Get a configuration value, prioritizing environment variables,
        then the config file, and finally a default value.
        """
        # 1. Check environment variable
        value = self.environ.get(key)
        if value:
            return value

        # 2. Check config file
        if key not in _SECRET_KEYS:
            for section in self._file_config.values():
                if isinstance(section, dict) and section.get(key) not in (None, ""):
                    return section[key]

        # 3. Return default
        return default

    @cached_property
    def api_key(self) -> Optional[str]:
        """The provider's API key, resolved on first access."""
        return resolve_api_key(
            self.provider,
            environ=self.environ,
            keychain_service=self.keychain_service,
            keychain_account=self.keychain_account,
        )

    @property
    def model(self) -> str:
        return self.anthropic_model if self.provider == "claude" else self.openai_model

    @property
    def timeout(self) -> Optional[float]:
        """Request timeout in seconds, None to wait indefinitely."""
        return _parse_timeout(self.timeout_setting)

    def validate(self):
        """Validate the configuration."""
        if self.provider not in KNOWN_PROVIDERS:
            logger.error(f"Unsupported provider '{self.provider}'")
            raise ConfigurationError(f"Unknown provider: {self.provider}")
        _parse_timeout(self.timeout_setting)

    def __str__(self) -> str:
        """Return string representation of the configuration."""
        config_dict = {
            "provider": self.provider,
            "model": self.model,
            "log_path": self.log_path,
            "timeout": self.timeout_setting,
            "verbose": self.verbose,
            "config_file": self.config_file,
        }
        return str(config_dict)
