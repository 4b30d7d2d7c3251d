"""Test helpers for reading secure tokens back."""

from __future__ import annotations

import base64

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa


def decrypt_token(private_key: rsa.RSAPrivateKey, token: str, *, oaep: bool = True) -> str:
    """Decrypt a secure token the way a receiving service would."""
    ciphertext = base64.b64decode(token, validate=True)
    if oaep:
        pad = padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA1()),
            algorithm=hashes.SHA1(),
            label=None,
        )
    else:
        pad = padding.PKCS1v15()
    return private_key.decrypt(ciphertext, pad).decode("utf-8")
