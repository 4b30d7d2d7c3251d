"""Robust Client Socket.

Per-service async HTTP clients that attach an RSA-encrypted, timestamped
secure token to every outgoing request.
"""

from importlib.metadata import PackageNotFoundError, version as _pkg_version

try:
    __version__ = _pkg_version("robust-client-socket")
except PackageNotFoundError:
    __version__ = "unknown"

from robust_client_socket._http import ServiceClient
from robust_client_socket.auth import SecureTokenAuth
from robust_client_socket.client import ClientRegistry, build_clients, client_class_name, load
from robust_client_socket.config import ConfigStore, Settings, configure, get_settings
from robust_client_socket.environment import (
    clear_environment_hook,
    is_production,
    register_environment_hook,
)
from robust_client_socket.errors import (
    ConfigurationError,
    EncryptionError,
    InsecureConnectionError,
    InvalidCredentialsError,
    RobustClientSocketError,
    WeakKeyError,
)
from robust_client_socket.signing import TokenSigner, sign_token
from robust_client_socket.types import (
    DEFAULT_HEADER_NAME,
    MIN_KEY_SIZE,
    ClientIdentity,
    CredentialBundle,
    PaddingScheme,
)
from robust_client_socket.validation import load_public_key, validate_credentials

__all__ = [
    # Clients
    "ServiceClient",
    "ClientRegistry",
    "build_clients",
    "client_class_name",
    "load",
    "SecureTokenAuth",
    "TokenSigner",
    "sign_token",
    # Configuration
    "ConfigStore",
    "Settings",
    "configure",
    "get_settings",
    "is_production",
    "register_environment_hook",
    "clear_environment_hook",
    "validate_credentials",
    "load_public_key",
    # Types
    "ClientIdentity",
    "CredentialBundle",
    "PaddingScheme",
    "DEFAULT_HEADER_NAME",
    "MIN_KEY_SIZE",
    # Errors
    "RobustClientSocketError",
    "ConfigurationError",
    "InvalidCredentialsError",
    "WeakKeyError",
    "InsecureConnectionError",
    "EncryptionError",
]
