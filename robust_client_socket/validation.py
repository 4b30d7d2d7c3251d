"""Credential validation.

Every service's credential bundle passes through ``validate_credentials``
before a client is built for it. Checks run in a fixed order and stop at the
first failure:

1. ``base_uri`` and ``public_key`` are present
2. ``base_uri`` is not blank
3. ``public_key`` is not blank and parses as an RSA public key
4. the RSA modulus is at least ``MIN_KEY_SIZE`` bits
5. in production, with TLS verification on, ``base_uri`` uses https
"""

from __future__ import annotations

import base64
import binascii
import ssl
from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import ValidationError

from robust_client_socket.environment import is_production
from robust_client_socket.errors import (
    InsecureConnectionError,
    InvalidCredentialsError,
    RobustClientSocketError,
    WeakKeyError,
)
from robust_client_socket.types import DEFAULT_CIPHERS, MIN_KEY_SIZE, CredentialBundle

logger = structlog.get_logger()

REQUIRED_KEYS = ("base_uri", "public_key")
SECURE_SCHEME = "https://"


def load_public_key(material: str | bytes) -> rsa.RSAPublicKey:
    """Parse an RSA public key from PEM text, DER bytes or base64 DER text.

    Raises:
        InvalidCredentialsError: If the material is a private key, is not a
            key at all, or holds a non-RSA key.
    """
    raw = material.encode("utf-8") if isinstance(material, str) else bytes(material)
    data = raw.strip()

    if b"PRIVATE KEY" in data:
        raise InvalidCredentialsError(
            "Invalid public key: private key material supplied, configure the public key only"
        )

    try:
        if data.startswith(b"-----BEGIN"):
            key = serialization.load_pem_public_key(data)
        else:
            try:
                der = base64.b64decode(b"".join(data.split()), validate=True)
            except binascii.Error:
                der = raw
            key = serialization.load_der_public_key(der)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InvalidCredentialsError(f"Invalid public key: {e}") from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise InvalidCredentialsError(
            f"Invalid public key: expected RSA, got {type(key).__name__}"
        )
    return key


def check_key_security(service_name: str, public_key: str | bytes) -> rsa.RSAPublicKey:
    """Load a service's public key and enforce the minimum modulus size."""
    try:
        key = load_public_key(public_key)
    except InvalidCredentialsError as e:
        raise InvalidCredentialsError(
            f"{e.message} (service: {service_name})",
            details={"service": service_name, "field": "public_key"},
        ) from e.__cause__

    if key.key_size < MIN_KEY_SIZE:
        raise WeakKeyError(
            f"RSA key size for {service_name} ({key.key_size} bits) "
            f"below minimum ({MIN_KEY_SIZE} bits)",
            details={
                "service": service_name,
                "field": "public_key",
                "actual": key.key_size,
                "required": MIN_KEY_SIZE,
            },
        )
    return key


def resolve_ciphers(service_name: str, ciphers: Any) -> tuple[str, ...]:
    """Normalize a cipher override into an ordered, non-empty tuple."""
    if ciphers is None:
        return DEFAULT_CIPHERS

    if isinstance(ciphers, str):
        names = [c.strip() for c in ciphers.split(":")]
    elif isinstance(ciphers, Sequence) and all(isinstance(c, str) for c in ciphers):
        names = [c.strip() for c in ciphers]
    else:
        raise InvalidCredentialsError(
            f"ciphers for {service_name} must be a string or a list of strings",
            details={"service": service_name, "field": "ciphers", "actual": type(ciphers).__name__},
        )

    names = [c for c in names if c]
    if not names:
        raise InvalidCredentialsError(
            f"ciphers for {service_name} cannot be empty",
            details={"service": service_name, "field": "ciphers"},
        )

    cipher_string = ":".join(names)
    try:
        ssl.create_default_context().set_ciphers(cipher_string)
    except ssl.SSLError as e:
        raise InvalidCredentialsError(
            f"ciphers for {service_name} are not supported by the TLS library: {cipher_string}",
            details={"service": service_name, "field": "ciphers", "actual": cipher_string},
        ) from e
    return tuple(names)


def _as_mapping(service_name: str, credentials: Any) -> dict[str, Any]:
    if isinstance(credentials, CredentialBundle):
        return credentials.model_dump()
    if isinstance(credentials, Mapping):
        return {str(k): v for k, v in credentials.items()}
    raise InvalidCredentialsError(
        f"Credentials for {service_name} must be a mapping, got {type(credentials).__name__}",
        details={"service": service_name, "actual": type(credentials).__name__},
    )


def _require_text(service_name: str, raw: dict[str, Any], field: str) -> str:
    value = raw[field]
    if isinstance(value, bytes):
        try:
            text = value.decode("utf-8")
        except UnicodeDecodeError:
            # binary DER
            text = base64.b64encode(value).decode("ascii")
    else:
        text = "" if value is None else str(value)
    if not text.strip():
        raise InvalidCredentialsError(
            f"{field} cannot be empty (service: {service_name})",
            details={"service": service_name, "field": field},
        )
    return text.strip()


def validate_credentials(
    service_name: str,
    credentials: Mapping[str, Any] | CredentialBundle,
    *,
    production: bool | None = None,
) -> CredentialBundle:
    """Validate a service's credentials and return an immutable bundle.

    Args:
        service_name: Registry key of the service, used in error messages
        credentials: Raw credential mapping (``base_uri``, ``public_key`` and
            optionally ``ssl_verify``, ``timeout``, ``open_timeout``,
            ``ciphers``, ``padding``)
        production: Override production detection; ``None`` asks
            ``is_production()`` when the https check is reached

    Returns:
        A new ``CredentialBundle``; ``credentials`` is left untouched

    Raises:
        InvalidCredentialsError: Missing or blank fields, unparseable key,
            malformed optional settings
        WeakKeyError: RSA modulus below ``MIN_KEY_SIZE``
        InsecureConnectionError: Non-https ``base_uri`` in production
    """
    try:
        return _validate(service_name, credentials, production)
    except RobustClientSocketError as e:
        logger.warning(
            "credentials.rejected",
            service=service_name,
            code=e.code,
            error=e.message,
        )
        raise


def _validate(
    service_name: str,
    credentials: Mapping[str, Any] | CredentialBundle,
    production: bool | None,
) -> CredentialBundle:
    raw = _as_mapping(service_name, credentials)

    missing = [key for key in REQUIRED_KEYS if key not in raw]
    if missing:
        raise InvalidCredentialsError(
            f"Missing keys for {service_name}: {', '.join(missing)}",
            details={"service": service_name, "missing": missing},
        )

    base_uri = _require_text(service_name, raw, "base_uri")
    public_key = _require_text(service_name, raw, "public_key")
    check_key_security(service_name, public_key)

    ssl_verify = raw.get("ssl_verify", True)
    if not isinstance(ssl_verify, bool):
        raise InvalidCredentialsError(
            f"ssl_verify for {service_name} must be a boolean",
            details={"service": service_name, "field": "ssl_verify", "actual": ssl_verify},
        )

    if ssl_verify and not base_uri.lower().startswith(SECURE_SCHEME):
        if production is None:
            production = is_production()
        if production:
            raise InsecureConnectionError(
                f"HTTPS required in production. Use https:// instead of {base_uri}",
                details={"service": service_name, "field": "base_uri", "actual": base_uri},
            )

    options: dict[str, Any] = {
        "base_uri": base_uri,
        "public_key": public_key,
        "ssl_verify": ssl_verify,
        "ciphers": resolve_ciphers(service_name, raw.get("ciphers")),
    }
    for field in ("timeout", "open_timeout", "padding"):
        if raw.get(field) is not None:
            options[field] = raw[field]

    try:
        bundle = CredentialBundle(**options)
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else "credentials"
        raise InvalidCredentialsError(
            f"Invalid {field} for {service_name}: {error['msg']}",
            details={"service": service_name, "field": field},
        ) from e

    if bundle.timeout <= 0 or bundle.open_timeout <= 0:
        raise InvalidCredentialsError(
            f"timeouts for {service_name} must be positive",
            details={
                "service": service_name,
                "field": "timeout",
                "actual": (bundle.timeout, bundle.open_timeout),
            },
        )
    return bundle
