"""Service client factory - main entry point for Robust Client Socket."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import TracebackType
from typing import Any

import structlog

from robust_client_socket._http import ServiceClient
from robust_client_socket.config import ConfigStore, Settings, get_settings
from robust_client_socket.environment import PRODUCTION
from robust_client_socket.errors import ConfigurationError
from robust_client_socket.types import DEFAULT_HEADER_NAME, ClientIdentity, CredentialBundle
from robust_client_socket.validation import validate_credentials

logger = structlog.get_logger()


def client_class_name(service_key: str) -> str:
    """Derive the public name of a service: ``payment_gateway`` -> ``PaymentGateway``."""
    return "".join(part.capitalize() for part in str(service_key).split("_"))


class ClientRegistry(Mapping[str, ServiceClient]):
    """Read-only collection of service clients built by ``build_clients``.

    Clients are reachable by service key, by derived class name, or as
    attributes under either name.

    Example:
        async with build_clients(services, "billing") as clients:
            response = await clients.PaymentGateway.get("/v1/charges")
            response = await clients["payment_gateway"].get("/v1/charges")
    """

    def __init__(self, clients: Mapping[str, ServiceClient]) -> None:
        self._clients = dict(clients)
        self._aliases = {client_class_name(key): key for key in self._clients}

    def _resolve(self, name: str) -> str:
        if name in self._clients:
            return name
        return self._aliases.get(name, name)

    def __getitem__(self, name: str) -> ServiceClient:
        return self._clients[self._resolve(name)]

    def __getattr__(self, name: str) -> ServiceClient:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"No client configured for service '{name}'") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._clients)

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._resolve(name) in self._clients

    @property
    def class_names(self) -> dict[str, str]:
        """Derived class name -> service key."""
        return dict(self._aliases)

    async def __aenter__(self) -> ClientRegistry:
        """Enter async context, opening every client."""
        try:
            for client in self._clients.values():
                await client.startup()
        except BaseException:
            await self.aclose()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context, closing every client."""
        await self.aclose()

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.aclose()


def build_clients(
    services: Mapping[str, Mapping[str, Any] | CredentialBundle],
    client_name: str | None,
    *,
    header_name: str | None = None,
    production: bool | None = None,
) -> ClientRegistry:
    """Validate every service's credentials and build one client per service.

    Validation of all entries completes before any client is constructed, so
    a single bad entry leaves nothing built.

    Args:
        services: Service key -> credentials mapping
        client_name: Name embedded in every token
        header_name: Token header; defaults to ``Secure-Token``
        production: Override production detection for the https check

    Returns:
        ClientRegistry with one independent ``ServiceClient`` per service

    Raises:
        ConfigurationError: No services or no client name
        InvalidCredentialsError: Missing/blank fields or unparseable key
        WeakKeyError: RSA key below the minimum size
        InsecureConnectionError: Non-https base URI in production
    """
    if not isinstance(services, Mapping) or not services:
        raise ConfigurationError("At least one service must be configured")
    if not client_name or not str(client_name).strip():
        raise ConfigurationError("client_name is required")

    identity = ClientIdentity(
        client_name=str(client_name).strip(),
        header_name=header_name or DEFAULT_HEADER_NAME,
    )

    validated = {
        str(key): validate_credentials(str(key), creds, production=production)
        for key, creds in services.items()
    }

    clients = {
        key: ServiceClient(key, bundle, identity) for key, bundle in validated.items()
    }
    logger.info(
        "service_clients.built",
        services=list(clients),
        client_name=identity.client_name,
        header_name=identity.header_name,
    )
    return ClientRegistry(clients)


def load(source: ConfigStore | Settings | None = None) -> ClientRegistry:
    """Build clients from a ``ConfigStore`` or ``Settings``.

    Without an argument the cached ``get_settings()`` are used.

    Raises:
        ConfigurationError: If the configuration is incomplete
    """
    if source is None:
        source = get_settings()
    store = source.to_store() if isinstance(source, Settings) else source

    if not store.is_complete():
        raise ConfigurationError(
            "You must configure RobustClientSocket first!",
            details={"services": list(store.services), "client_name": store.client_name},
        )

    production = store.env.strip().lower() == PRODUCTION if store.env else None
    return build_clients(
        store.services,
        store.client_name,
        header_name=store.header_name,
        production=production,
    )
