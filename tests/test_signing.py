"""Tests for secure token signing."""

from __future__ import annotations

import base64
from datetime import UTC, datetime, timedelta, timezone

import pytest
from structlog.testing import capture_logs

from robust_client_socket.errors import EncryptionError
from robust_client_socket.signing import (
    TokenSigner,
    build_payload,
    sign_token,
    unix_timestamp,
)
from robust_client_socket.types import ClientIdentity, PaddingScheme
from tests.helpers import decrypt_token

NOW = datetime(2026, 2, 6, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def identity() -> ClientIdentity:
    return ClientIdentity(client_name="svc")


class TestPayload:
    def test_payload_format(self):
        assert build_payload("svc", NOW) == f"svc_{int(NOW.timestamp())}"

    def test_naive_datetime_treated_as_utc(self):
        naive = NOW.replace(tzinfo=None)
        assert unix_timestamp(naive) == unix_timestamp(NOW)

    def test_offset_datetime_converted_to_utc(self):
        shifted = NOW.astimezone(timezone(timedelta(hours=5)))
        assert unix_timestamp(shifted) == unix_timestamp(NOW)


class TestTokenSigner:
    """Token format, freshness and failure handling."""

    def test_token_decrypts_to_timestamped_payload(self, public_pem, private_key, identity):
        token = TokenSigner(public_pem, identity).sign(NOW)

        assert decrypt_token(private_key, token) == f"svc_{int(NOW.timestamp())}"

    def test_token_is_standard_base64_of_one_block(self, public_pem, identity):
        token = TokenSigner(public_pem, identity).sign(NOW)

        raw = base64.b64decode(token, validate=True)
        assert len(raw) == 2048 // 8
        assert base64.b64encode(raw).decode() == token

    def test_block_size_follows_key_size(self, large_private_key, identity):
        signer = TokenSigner(large_private_key.public_key(), identity)

        raw = base64.b64decode(signer.sign(NOW), validate=True)
        assert signer.key_size == 3072
        assert len(raw) == 3072 // 8

    def test_different_timestamps_produce_different_tokens(self, public_pem, private_key, identity):
        signer = TokenSigner(public_pem, identity)

        first = signer.sign(NOW)
        second = signer.sign(NOW + timedelta(seconds=1))

        assert first != second
        assert decrypt_token(private_key, first) != decrypt_token(private_key, second)

    def test_same_second_still_differs_with_oaep(self, public_pem, private_key, identity):
        """OAEP randomizes ciphertext even for identical plaintext."""
        signer = TokenSigner(public_pem, identity)

        first = signer.sign(NOW)
        second = signer.sign(NOW)

        assert first != second
        assert decrypt_token(private_key, first) == decrypt_token(private_key, second)

    def test_uses_clock_when_no_time_given(self, public_pem, private_key, identity):
        ticks = iter([NOW, NOW + timedelta(seconds=30)])
        signer = TokenSigner(public_pem, identity, clock=lambda: next(ticks))

        assert decrypt_token(private_key, signer.sign()).endswith(f"_{int(NOW.timestamp())}")
        assert decrypt_token(private_key, signer.sign()).endswith(f"_{int(NOW.timestamp()) + 30}")

    def test_encrypt_message(self, public_pem, private_key, identity):
        signer = TokenSigner(public_pem, identity)

        token = signer.encrypt_message("order-42", NOW)

        assert decrypt_token(private_key, token) == f"order-42_{int(NOW.timestamp())}"

    def test_legacy_padding_is_flagged(self, public_pem, private_key, identity):
        with capture_logs() as logs:
            signer = TokenSigner(public_pem, identity, padding=PaddingScheme.PKCS1V15)

        assert any(log["event"] == "token.legacy_padding" for log in logs)
        token = signer.sign(NOW)
        assert decrypt_token(private_key, token, oaep=False) == f"svc_{int(NOW.timestamp())}"

    def test_weak_key_fails_at_sign_time(self, weak_private_key, identity):
        signer = TokenSigner(weak_private_key.public_key(), identity)

        with pytest.raises(EncryptionError, match="below minimum"):
            signer.sign(NOW)

    def test_oversized_payload_raises_encryption_error(self, public_pem):
        signer = TokenSigner(public_pem, ClientIdentity(client_name="x" * 300))

        with pytest.raises(EncryptionError, match="Encryption failed") as exc_info:
            signer.sign(NOW)

        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_malformed_key_raises_encryption_error(self, identity):
        with pytest.raises(EncryptionError, match="Invalid public key"):
            TokenSigner("not a key", identity)

    def test_signer_can_be_reused_after_failure(self, public_pem, private_key, identity):
        signer = TokenSigner(public_pem, identity)

        with pytest.raises(EncryptionError):
            signer.encrypt_message("y" * 400, NOW)

        assert decrypt_token(private_key, signer.sign(NOW)).startswith("svc_")


def test_sign_token_function(public_pem, private_key, identity):
    token = sign_token(identity, public_pem, NOW)
    assert decrypt_token(private_key, token) == f"svc_{int(NOW.timestamp())}"
