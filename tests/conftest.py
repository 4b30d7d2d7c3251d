"""Shared fixtures: RSA key material and environment isolation."""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from robust_client_socket.config import get_settings
from robust_client_socket.environment import ENV_VARS, clear_environment_hook


def _public_pem(private_key) -> str:
    return (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("ascii")
    )


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_pem(private_key) -> str:
    """2048-bit RSA public key in PEM (SubjectPublicKeyInfo)."""
    return _public_pem(private_key)


@pytest.fixture(scope="session")
def other_public_pem(other_private_key) -> str:
    return _public_pem(other_private_key)


@pytest.fixture(scope="session")
def weak_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=1024)


@pytest.fixture(scope="session")
def weak_public_pem(weak_private_key) -> str:
    """1024-bit RSA public key in PEM."""
    return _public_pem(weak_private_key)


@pytest.fixture(scope="session")
def large_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=3072)


@pytest.fixture(scope="session")
def private_pem(private_key) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def ec_public_pem() -> str:
    return _public_pem(ec.generate_private_key(ec.SECP256R1()))


@pytest.fixture
def credentials(public_pem) -> dict:
    """Minimal valid credentials."""
    return {"base_uri": "https://a.example", "public_key": public_pem}


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Run every test as non-production with no hook and fresh settings."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("ROBUST_CLIENT_SOCKET_CONFIG_FILE", raising=False)
    monkeypatch.delenv("ROBUST_CLIENT_SOCKET_CLIENT_NAME", raising=False)
    monkeypatch.delenv("ROBUST_CLIENT_SOCKET_HEADER_NAME", raising=False)
    monkeypatch.delenv("ROBUST_CLIENT_SOCKET_SERVICES", raising=False)
    clear_environment_hook()
    get_settings.cache_clear()
    yield
    clear_environment_hook()
    get_settings.cache_clear()
