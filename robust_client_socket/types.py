"""Type definitions for Robust Client Socket.

Pydantic models for per-service credentials and the calling identity.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_HEADER_NAME = "Secure-Token"
MIN_KEY_SIZE = 2048
DEFAULT_TIMEOUT = 10.0
DEFAULT_OPEN_TIMEOUT = 5.0

# AEAD-only ECDHE suites, OpenSSL names
DEFAULT_CIPHERS: tuple[str, ...] = (
    "ECDHE-RSA-AES128-GCM-SHA256",
    "ECDHE-RSA-AES256-GCM-SHA384",
    "ECDHE-ECDSA-AES128-GCM-SHA256",
    "ECDHE-ECDSA-AES256-GCM-SHA384",
)


class PaddingScheme(str, Enum):
    """RSA encryption padding used for secure tokens."""

    OAEP = "oaep"
    PKCS1V15 = "pkcs1v15"  # Legacy, no OAEP randomization guarantees


class CredentialBundle(BaseModel):
    """Validated credentials for one backend service.

    Instances are only produced by ``validate_credentials`` and are immutable
    once built.
    """

    model_config = ConfigDict(frozen=True)

    base_uri: str
    public_key: str
    ssl_verify: bool = True
    timeout: float = DEFAULT_TIMEOUT
    open_timeout: float = DEFAULT_OPEN_TIMEOUT
    ciphers: tuple[str, ...] = DEFAULT_CIPHERS
    padding: PaddingScheme = PaddingScheme.OAEP

    @property
    def cipher_string(self) -> str:
        """Cipher allow-list in OpenSSL ``a:b:c`` form."""
        return ":".join(self.ciphers)


class ClientIdentity(BaseModel):
    """Name embedded in every token plus the header that carries it."""

    model_config = ConfigDict(frozen=True)

    client_name: str = Field(min_length=1)
    header_name: str = Field(default=DEFAULT_HEADER_NAME, min_length=1)
