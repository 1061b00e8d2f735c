"""API key storage for linearview.

The key lives in the system keyring under a fixed service name. An
``LINEAR_API_KEY`` environment variable (optionally loaded from a ``.env``
file) takes precedence so CI and scripted usage never touch the keyring.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import keyring
from dotenv import load_dotenv
from keyring.errors import KeyringError, PasswordDeleteError

from .logging import get_logger

KEYRING_SERVICE = "LinearViewer"
KEYRING_ENTRY = "apiKey"
API_KEY_ENV_VAR = "LINEAR_API_KEY"


class CredentialError(RuntimeError):
    """Raised when the keyring refuses to store or remove the API key."""


@dataclass
class CredentialConfig:
    load_dotenv: bool = True
    dotenv_path: str | None = None
    api_key_var: str = API_KEY_ENV_VAR
    service: str = KEYRING_SERVICE
    entry: str = KEYRING_ENTRY


class CredentialStore:
    """Get/set a single opaque API key; absence is a valid state."""

    def __init__(self, config: CredentialConfig | None = None):
        self.config = config or CredentialConfig()
        self.logger = get_logger()
        self._dotenv_loaded = False
        if self.config.load_dotenv:
            self._load_dotenv()

    def _load_dotenv(self) -> None:
        """Load .env file if available."""
        candidates = [self.config.dotenv_path] if self.config.dotenv_path else [".env", ".env.local"]
        for location in candidates:
            if location is None:
                continue
            env_path = Path(location)
            if env_path.exists():
                load_dotenv(str(env_path))
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                break

    @property
    def dotenv_loaded(self) -> bool:
        return self._dotenv_loaded

    def _env_api_key(self) -> str | None:
        value = os.getenv(self.config.api_key_var)
        if value and value.strip():
            return value.strip()
        return None

    def _keyring_api_key(self) -> str | None:
        try:
            secret = keyring.get_password(self.config.service, self.config.entry)
        except KeyringError as exc:  # pragma: no cover - platform dependent
            self.logger.debug("Keyring unavailable", error=str(exc))
            return None
        if not isinstance(secret, str) or not secret.strip():
            return None
        return secret

    def get_api_key(self) -> str | None:
        key = self._env_api_key()
        if key:
            self.logger.debug("Using API key from environment", source=self.config.api_key_var)
            return key
        return self._keyring_api_key()

    def source(self) -> str | None:
        """Where ``get_api_key`` would read from: 'environment', 'keyring' or None."""
        if self._env_api_key():
            return "environment"
        if self._keyring_api_key():
            return "keyring"
        return None

    def set_api_key(self, value: str | None) -> None:
        if value is None or not value.strip():
            self.delete_api_key()
            return
        try:
            keyring.set_password(self.config.service, self.config.entry, value.strip())
        except KeyringError as exc:
            raise CredentialError(f"Failed to store API key in keyring: {exc}") from exc
        self.logger.log_operation("api_key_stored", backend="keyring")

    def delete_api_key(self) -> bool:
        """Remove the stored key. Returns False when nothing was stored."""
        try:
            keyring.delete_password(self.config.service, self.config.entry)
        except PasswordDeleteError:
            return False
        except KeyringError as exc:
            raise CredentialError(f"Failed to remove API key from keyring: {exc}") from exc
        self.logger.log_operation("api_key_removed", backend="keyring")
        return True


def create_credential_store(
    load_dotenv: bool = True, dotenv_path: str | None = None
) -> CredentialStore:
    return CredentialStore(CredentialConfig(load_dotenv=load_dotenv, dotenv_path=dotenv_path))


__all__ = [
    "API_KEY_ENV_VAR",
    "CredentialConfig",
    "CredentialError",
    "CredentialStore",
    "KEYRING_ENTRY",
    "KEYRING_SERVICE",
    "create_credential_store",
]
