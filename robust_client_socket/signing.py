"""Secure token signing.

A token is ``base64(rsa_encrypt("{client_name}_{unix_utc_seconds}"))``. The
receiving service decrypts it with its private key and rejects tokens whose
timestamp falls outside its accepted skew window.
"""

from __future__ import annotations

import base64
from datetime import UTC, datetime
from typing import Callable

import structlog
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric import rsa

from robust_client_socket.errors import EncryptionError, InvalidCredentialsError
from robust_client_socket.types import MIN_KEY_SIZE, ClientIdentity, PaddingScheme
from robust_client_socket.validation import load_public_key

logger = structlog.get_logger()


def utcnow() -> datetime:
    """Return current time as an aware UTC datetime."""
    return datetime.now(UTC)


def unix_timestamp(now: datetime) -> int:
    """Whole seconds since the epoch; naive datetimes are read as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return int(now.timestamp())


def build_payload(message: str, now: datetime) -> str:
    """Frame ``message`` with a UTC timestamp: ``"{message}_{seconds}"``."""
    return f"{message}_{unix_timestamp(now)}"


def _padding_for(scheme: PaddingScheme) -> asym_padding.AsymmetricPadding:
    if scheme is PaddingScheme.PKCS1V15:
        return asym_padding.PKCS1v15()
    # SHA-1 OAEP matches OpenSSL's PKCS1_OAEP_PADDING used by receivers
    return asym_padding.OAEP(
        mgf=asym_padding.MGF1(algorithm=hashes.SHA1()),
        algorithm=hashes.SHA1(),
        label=None,
    )


def encrypt(
    data: str,
    public_key: rsa.RSAPublicKey,
    scheme: PaddingScheme = PaddingScheme.OAEP,
) -> str:
    """Encrypt ``data`` with ``public_key`` and return standard base64 text.

    Raises:
        EncryptionError: On undersized keys or any crypto backend failure
    """
    if public_key.key_size < MIN_KEY_SIZE:
        raise EncryptionError(
            f"RSA key size ({public_key.key_size} bits) below minimum ({MIN_KEY_SIZE} bits)",
            details={"actual": public_key.key_size, "required": MIN_KEY_SIZE},
        )

    try:
        ciphertext = public_key.encrypt(data.encode("utf-8"), _padding_for(scheme))
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise EncryptionError(f"Encryption failed: {e}") from e

    return base64.b64encode(ciphertext).decode("ascii")


class TokenSigner:
    """Produces a fresh secure token for one client identity.

    The parsed public key is cached on the instance and only read afterwards,
    so one signer can be shared by concurrent requests. Tokens themselves are
    never cached.
    """

    def __init__(
        self,
        public_key: str | bytes | rsa.RSAPublicKey,
        identity: ClientIdentity,
        *,
        padding: PaddingScheme = PaddingScheme.OAEP,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize signer.

        Args:
            public_key: RSA public key object or its PEM/DER encoding
            identity: Client name and header name
            padding: Encryption padding; PKCS#1 v1.5 is a legacy fallback
            clock: Source of the current time

        Raises:
            EncryptionError: If the key material cannot be parsed
        """
        if isinstance(public_key, rsa.RSAPublicKey):
            self._public_key = public_key
        else:
            try:
                self._public_key = load_public_key(public_key)
            except InvalidCredentialsError as e:
                raise EncryptionError(e.message) from e

        self._identity = identity
        self._padding = PaddingScheme(padding)
        self._clock = clock

        if self._padding is PaddingScheme.PKCS1V15:
            logger.warning(
                "token.legacy_padding",
                client_name=identity.client_name,
                padding=self._padding.value,
            )

    @property
    def identity(self) -> ClientIdentity:
        return self._identity

    @property
    def padding(self) -> PaddingScheme:
        return self._padding

    @property
    def key_size(self) -> int:
        """RSA modulus size in bits; tokens decode to ``key_size // 8`` bytes."""
        return self._public_key.key_size

    def sign(self, now: datetime | None = None) -> str:
        """Return a newly encrypted token for the current (or given) time."""
        return self.encrypt_message(self._identity.client_name, now)

    def encrypt_message(self, message: str, now: datetime | None = None) -> str:
        """Encrypt an arbitrary message framed with a UTC timestamp."""
        payload = build_payload(message, now if now is not None else self._clock())
        return encrypt(payload, self._public_key, self._padding)


def sign_token(
    identity: ClientIdentity,
    public_key: str | bytes | rsa.RSAPublicKey,
    now: datetime | None = None,
    padding: PaddingScheme = PaddingScheme.OAEP,
) -> str:
    """Sign a single token without keeping a signer around."""
    return TokenSigner(public_key, identity, padding=padding).sign(now)
