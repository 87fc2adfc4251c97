"""Async Keycloak Admin REST API client.

The client wires together the connection configuration, one HTTP session,
one authentication manager and one request executor, and exposes the
resource modules on top of them. Each instance owns its own token cache, so
several clients for different realms or credentials can live in one process
without sharing state.
"""

import logging
import time
from types import TracebackType
from typing import Any

import aiohttp

from kcadmin.auth import DEFAULT_REFRESH_MARGIN_SECONDS, AuthenticationManager
from kcadmin.config import ConnectionConfig
from kcadmin.executor import RequestDescriptor, RequestExecutor
from kcadmin.resources import ClientScopesResource, ClientsResource, RealmResource, UsersResource
from kcadmin.token_cache import Clock

logger = logging.getLogger(__name__)


class KeycloakAdminClient:
    """Client for the Keycloak Admin REST API of one realm.

    Attributes:
        config: The immutable connection configuration
        auth: Authentication manager (token cache and refresh)
        executor: Request executor used by all resources
        users: User operations
        clients: Client operations
        client_scopes: Client scope and protocol mapper operations
        realm: Realm configuration

    Example:
        >>> config = ConnectionConfig(
        ...     base_url="http://localhost:8080",
        ...     realm="demo",
        ...     auth_method=AuthMethod.CLIENT,
        ...     credentials=ClientCredentials("admin-client", "secret"),
        ... )
        >>> async with KeycloakAdminClient(config) as client:
        ...     users = await client.users.find(max_results=10)
        ...     print(f"Found {len(users)} users")
    """

    def __init__(
        self,
        config: ConnectionConfig,
        session: aiohttp.ClientSession | None = None,
        refresh_margin_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS,
        clock: Clock = time.time,
    ):
        """Initialize the client.

        Args:
            config: Connection configuration
            session: Optional externally managed HTTP session. When omitted the
                client creates its own on first use and closes it in ``close()``
            refresh_margin_seconds: See ``AuthenticationManager``
            clock: Source of the current Unix time
        """
        self.config = config
        self._session = session
        self._owns_session = session is None

        self.auth = AuthenticationManager(
            config,
            self._ensure_session,
            refresh_margin_seconds=refresh_margin_seconds,
            clock=clock,
        )
        self.executor = RequestExecutor(config, self.auth, self._ensure_session)

        self.users = UsersResource(self.executor)
        self.clients = ClientsResource(self.executor)
        self.client_scopes = ClientScopesResource(self.executor)
        self.realm = RealmResource(self.executor)

        logger.debug(
            f"Initialized Keycloak admin client for realm '{config.realm}' "
            f"at {config.base_url} (auth: {config.auth_method.value})"
        )

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP client session."""
        if self._session is None or self._session.closed:
            if not self._owns_session:
                raise RuntimeError("The HTTP session passed to KeycloakAdminClient is closed")
            self._session = aiohttp.ClientSession()
        return self._session

    async def get_valid_token(self) -> str:
        return await self.auth.get_valid_token()

    async def execute(self, descriptor: RequestDescriptor) -> Any:
        """Run an arbitrary admin API request (for endpoints without a resource module)."""
        return await self.executor.execute(descriptor)

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if not self._owns_session or self._session is None:
            return
        if not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "KeycloakAdminClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
