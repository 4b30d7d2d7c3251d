"""HTTP client wrapper for one backend service.

Handles TLS hardening, timeouts, standard headers and secure token injection.
"""

from __future__ import annotations

import ssl
from types import TracebackType
from typing import Any

import certifi
import httpx
import structlog

from robust_client_socket.auth import SecureTokenAuth
from robust_client_socket.signing import TokenSigner
from robust_client_socket.types import ClientIdentity, CredentialBundle

logger = structlog.get_logger()

USER_AGENT_NAME = "RobustClientSocket"


def _user_agent() -> str:
    from robust_client_socket import __version__

    return f"{USER_AGENT_NAME}/{__version__}"


def build_headers() -> dict[str, str]:
    """Headers sent with every request."""
    return {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": _user_agent(),
    }


def build_ssl_context(credentials: CredentialBundle) -> ssl.SSLContext:
    """TLS 1.2+ context with peer verification and the bundle's cipher list."""
    context = ssl.create_default_context(cafile=certifi.where())
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.verify_mode = ssl.CERT_REQUIRED
    context.check_hostname = True
    context.set_ciphers(credentials.cipher_string)
    return context


def build_default_ssl_context() -> ssl.SSLContext:
    """Verifying context with library defaults, used when hardening is off."""
    return ssl.create_default_context(cafile=certifi.where())


class ServiceClient:
    """Async HTTP client bound to a single backend service.

    Wraps httpx.AsyncClient with:
    - Base URI, timeouts and TLS policy from the service's credentials
    - JSON content negotiation headers and a library User-Agent
    - A fresh secure token header on every request

    Configuration is fixed at construction. The underlying connection pool
    is opened by ``async with`` and closed on exit.
    """

    def __init__(
        self,
        service_name: str,
        credentials: CredentialBundle,
        identity: ClientIdentity,
    ) -> None:
        """Initialize service client.

        Args:
            service_name: Registry key of the service
            credentials: Validated credentials (see ``validate_credentials``)
            identity: Client name embedded in tokens and the token header name
        """
        self._service_name = service_name
        self._credentials = credentials
        self._identity = identity
        self._signer = TokenSigner(
            credentials.public_key,
            identity,
            padding=credentials.padding,
        )
        self._auth = SecureTokenAuth(self._signer, identity.header_name)
        self._timeout = httpx.Timeout(credentials.timeout, connect=credentials.open_timeout)
        self._ssl_context = (
            build_ssl_context(credentials)
            if credentials.ssl_verify
            else build_default_ssl_context()
        )
        self._client: httpx.AsyncClient | None = None
        self._log = logger.bind(service=service_name)

        if not credentials.ssl_verify:
            self._log.warning("service_client.tls_hardening_disabled")

    async def __aenter__(self) -> ServiceClient:
        """Enter async context, creating HTTP client."""
        await self.startup()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context, closing HTTP client."""
        await self.aclose()

    async def startup(self) -> None:
        """Open the connection pool."""
        if self._client is not None:
            self._log.warning("service_client.already_started")
            return

        self._client = httpx.AsyncClient(
            base_url=self._credentials.base_uri,
            headers=build_headers(),
            timeout=self._timeout,
            verify=self._ssl_context,
            auth=self._auth,
        )
        self._log.info(
            "service_client.started",
            base_uri=self._credentials.base_uri,
            header_name=self._auth.header_name,
            ssl_verify=self._credentials.ssl_verify,
        )

    async def aclose(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is None:
            return

        await self._client.aclose()
        self._client = None
        self._log.info("service_client.shutdown")

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the underlying httpx client."""
        if self._client is None:
            raise RuntimeError("ServiceClient not initialized. Use 'async with' context.")
        return self._client

    @property
    def is_started(self) -> bool:
        return self._client is not None

    @property
    def service_name(self) -> str:
        return self._service_name

    @property
    def base_uri(self) -> str:
        return self._credentials.base_uri

    @property
    def credentials(self) -> CredentialBundle:
        return self._credentials

    @property
    def identity(self) -> ClientIdentity:
        return self._identity

    @property
    def client_name(self) -> str:
        return self._identity.client_name

    @property
    def header_name(self) -> str:
        return self._auth.header_name

    @property
    def signer(self) -> TokenSigner:
        return self._signer

    @property
    def auth(self) -> SecureTokenAuth:
        """Auth flow usable with any caller-built httpx client."""
        return self._auth

    @property
    def ssl_context(self) -> ssl.SSLContext:
        return self._ssl_context

    @property
    def timeout(self) -> httpx.Timeout:
        return self._timeout

    def secure_token(self) -> str:
        """Return a freshly signed token without sending a request."""
        return self._signer.sign()

    def encrypt_message(self, message: str) -> str:
        """Encrypt ``"{message}_{timestamp}"`` with this service's key."""
        return self._signer.encrypt_message(message)

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request to the service.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, etc.)
            path: Path relative to the service's base URI
            **kwargs: Passed to ``httpx.AsyncClient.request`` unchanged
                (``json``, ``params``, ``headers``, ``timeout``, ...)

        Returns:
            The raw ``httpx.Response``; status handling is left to the caller

        Raises:
            EncryptionError: If the token cannot be signed; nothing is sent
            httpx.HTTPError: Transport failures
        """
        self._log.debug("service_client.request", method=method, path=path)
        response = await self.client.request(method, path, **kwargs)
        self._log.debug("service_client.response", status_code=response.status_code, path=path)
        return response

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a POST request."""
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a PUT request."""
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a PATCH request."""
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a DELETE request."""
        return await self.request("DELETE", path, **kwargs)

    async def head(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a HEAD request."""
        return await self.request("HEAD", path, **kwargs)

    async def options(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make an OPTIONS request."""
        return await self.request("OPTIONS", path, **kwargs)
