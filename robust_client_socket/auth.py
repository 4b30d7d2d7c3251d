"""Secure token injection for httpx.

``SecureTokenAuth`` plugs into httpx's auth flow, which runs for every request
right before it is sent, on both ``httpx.Client`` and ``httpx.AsyncClient``.
"""

from __future__ import annotations

from typing import Generator

import httpx

from robust_client_socket.signing import TokenSigner
from robust_client_socket.types import DEFAULT_HEADER_NAME


class SecureTokenAuth(httpx.Auth):
    """Set ``header_name`` to a freshly signed token on each outgoing request.

    Only that header is touched; method, URL and body go out as the caller
    built them. A signing failure raises before the request is yielded, so
    nothing is transmitted.

    Example:
        auth = SecureTokenAuth(signer)
        with httpx.Client(base_url="https://billing.internal", auth=auth) as c:
            c.get("/v1/invoices")
    """

    def __init__(self, signer: TokenSigner, header_name: str | None = None) -> None:
        self._signer = signer
        self._header_name = header_name or signer.identity.header_name or DEFAULT_HEADER_NAME

    @property
    def header_name(self) -> str:
        return self._header_name

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers[self._header_name] = self._signer.sign()
        yield request
