import getpass
import logging
import os
import platform
from typing import Mapping, Optional

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

UNIVERSAL_KEY_VAR = "SMSH_API_KEY"

# Environment variables checked in order, after the universal override.
PROVIDER_KEY_VARS = {
    "openai": ("SMSH_OPENAI_API_KEY", "OPENAI_API_KEY"),
    "claude": ("SMSH_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"),
}

KEYCHAIN_SERVICES = {
    "openai": "smartshell.openai",
    "claude": "smartshell.anthropic",
}


def _non_empty(value: Optional[str]) -> Optional[str]:
    return value if value else None


def _keychain_lookup(service: str, account: str) -> Optional[str]:
    """Reads a generic password from the platform secret store."""
    try:
        return _non_empty(keyring.get_password(service, account))
    except KeyringError as e:
        logger.debug(f"Keychain lookup for '{service}' failed: {e}")
        return None


def resolve_api_key(
    provider: str,
    environ: Optional[Mapping[str, str]] = None,
    system: Optional[str] = None,
    keychain_service: Optional[str] = None,
    keychain_account: Optional[str] = None,
) -> Optional[str]:
    """
    Resolve the API key for a provider.

    The universal override wins, then the provider's own variables, then (on
    macOS only) the keychain entry for the current user. Empty values are
    treated as unset. Nothing is cached, so every call re-reads its sources.

    Args:
        provider: "openai" or "claude".
        environ: Environment to read from, defaults to ``os.environ``.
        system: Platform name as reported by ``platform.system()``.
        keychain_service: Overrides the default keychain service name.
        keychain_account: Overrides the current OS user name.

    Returns:
        The key, or None when no source provides one.
    """
    env = os.environ if environ is None else environ

    key = _non_empty(env.get(UNIVERSAL_KEY_VAR))
    if key:
        return key

    if provider not in PROVIDER_KEY_VARS:
        return None

    for var in PROVIDER_KEY_VARS[provider]:
        key = _non_empty(env.get(var))
        if key:
            logger.debug(f"Using API key from {var}")
            return key

    system = system or platform.system()
    if system != "Darwin":
        return None

    service = keychain_service or KEYCHAIN_SERVICES[provider]
    account = keychain_account or getpass.getuser()
    logger.debug(f"Looking up keychain entry '{service}' for account '{account}'")
    return _keychain_lookup(service, account)
