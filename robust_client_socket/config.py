"""Robust Client Socket configuration management.

Configuration sources (in priority order):
1. Explicit ``ConfigStore`` built in code via ``configure()``
2. Environment variables (ROBUST_CLIENT_SOCKET_ prefix)
3. Config file (robust_client_socket.yaml)
4. Defaults
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from robust_client_socket.errors import InvalidCredentialsError
from robust_client_socket.types import DEFAULT_HEADER_NAME
from robust_client_socket.validation import check_key_security

CONFIG_FILE_ENV = "ROBUST_CLIENT_SOCKET_CONFIG_FILE"
DEFAULT_CONFIG_FILE = Path("robust_client_socket.yaml")


class ConfigStore:
    """Incrementally built service registry plus client identity.

    Example:
        store = ConfigStore()
        store.client_name = "billing"
        store["payment_gateway"] = {
            "base_uri": "https://payments.internal",
            "public_key": PEM,
        }
    """

    def __init__(self) -> None:
        self.client_name: str | None = None
        self.header_name: str | None = None
        self.env: str | None = None
        self._services: dict[str, dict[str, Any]] = {}

    def add_service(self, name: str, credentials: Mapping[str, Any]) -> None:
        """Register (or replace) the credentials of service ``name``.

        Raises:
            InvalidCredentialsError: If ``credentials`` is not a mapping
        """
        if not isinstance(credentials, Mapping):
            raise InvalidCredentialsError(
                f"Credentials for {name} must be a mapping, got {type(credentials).__name__}",
                details={"service": name, "actual": type(credentials).__name__},
            )
        self._services[str(name)] = dict(credentials)

    def __setitem__(self, name: str, credentials: Mapping[str, Any]) -> None:
        self.add_service(name, credentials)

    def __getitem__(self, name: str) -> dict[str, Any]:
        return dict(self._services[name])

    def __contains__(self, name: object) -> bool:
        return name in self._services

    @property
    def services(self) -> dict[str, dict[str, Any]]:
        """Copy of the registered services."""
        return {name: dict(creds) for name, creds in self._services.items()}

    def is_complete(self) -> bool:
        """Check that there is a client name and every service names its keys."""
        if not self._services or not self.client_name:
            return False
        return all(
            "base_uri" in creds and "public_key" in creds for creds in self._services.values()
        )


def validate_keys_security(store: ConfigStore) -> None:
    """Reject weak or malformed public keys across the whole store."""
    for service_name, creds in store.services.items():
        if creds.get("public_key"):
            check_key_security(service_name, creds["public_key"])


def configure(callback: Callable[[ConfigStore], None]) -> ConfigStore:
    """Build a ``ConfigStore`` through ``callback`` and check its keys.

    Raises:
        InvalidCredentialsError: Unparseable public key
        WeakKeyError: Public key below the minimum size
    """
    store = ConfigStore()
    callback(store)
    validate_keys_security(store)
    return store


class Settings(BaseSettings):
    """Robust Client Socket settings."""

    model_config = SettingsConfigDict(
        env_prefix="ROBUST_CLIENT_SOCKET_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    client_name: str | None = None
    header_name: str = DEFAULT_HEADER_NAME

    # Deployment environment; None defers to environment.is_production()
    env: str | None = None

    # service key -> credentials (base_uri, public_key, ssl_verify, ...)
    services: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def to_store(self) -> ConfigStore:
        """Convert settings into a ``ConfigStore``."""
        store = ConfigStore()
        store.client_name = self.client_name
        store.header_name = self.header_name
        store.env = self.env
        for name, creds in self.services.items():
            store.add_service(name, creds)
        return store


def _load_config_file() -> dict:
    """Load configuration from YAML file if exists.

    Looks for config file in order:
    1. ROBUST_CLIENT_SOCKET_CONFIG_FILE environment variable
    2. ./robust_client_socket.yaml
    """
    config_paths = [
        os.environ.get(CONFIG_FILE_ENV),
        DEFAULT_CONFIG_FILE,
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}

    return {}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Configuration is loaded from:
    1. YAML config file (if exists)
    2. Environment variables
    3. Defaults
    """
    file_config = _load_config_file()
    return Settings(**file_config)
