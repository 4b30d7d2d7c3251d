"""Robust Client Socket error types.

Configuration errors are raised while clients are being built and are never
swallowed. ``EncryptionError`` is raised per request and aborts only that
request.
"""

from __future__ import annotations

from typing import Any


class RobustClientSocketError(Exception):
    """Base error for all Robust Client Socket exceptions."""

    code: str = "internal_error"
    message: str = "An internal error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(RobustClientSocketError):
    """Client configuration is incomplete (no services, no client name)."""

    code = "configuration_error"
    message = "Client configuration is incomplete"


class InvalidCredentialsError(RobustClientSocketError):
    """Credential bundle is missing fields, has empty fields or a bad key."""

    code = "invalid_credentials"
    message = "Invalid credentials"


class WeakKeyError(RobustClientSocketError):
    """RSA public key is below the minimum modulus size."""

    code = "weak_key"
    message = "RSA key size below minimum"


class InsecureConnectionError(RobustClientSocketError):
    """Non-https base URI while production enforcement is active."""

    code = "insecure_connection"
    message = "HTTPS required in production"


class EncryptionError(RobustClientSocketError):
    """Secure token could not be encrypted.

    The underlying exception is chained as ``__cause__``. The request that
    triggered signing is aborted before anything is sent.
    """

    code = "encryption_error"
    message = "Encryption failed"
