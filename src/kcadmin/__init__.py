"""Async typed client for the Keycloak Admin REST API.

Architecture:
- config.py: immutable connection configuration
- credentials.py: token acquisition per authentication method
- token_cache.py: token state and cache
- auth.py: authentication manager (deduplicated token refresh)
- executor.py: authenticated request execution with retry-on-expiry
- classifier.py / exceptions.py: error taxonomy
- resources/: typed call sites for users, clients, client scopes, realm
- server.py: MCP server exposing read operations as tools
"""

from kcadmin.auth import AuthenticationManager
from kcadmin.client import KeycloakAdminClient
from kcadmin.config import (
    AuthMethod,
    ClientCredentials,
    ConnectionConfig,
    PasswordCredentials,
    TokenCredentials,
)
from kcadmin.exceptions import (
    ConflictError,
    ErrorKind,
    KeycloakAPIError,
    KeycloakAuthError,
    KeycloakConfigError,
    KeycloakError,
    NetworkError,
    NotFoundError,
    ServerError,
    UnauthorizedError,
    ValidationFailedError,
)
from kcadmin.executor import RequestDescriptor, RequestExecutor
from kcadmin.token_cache import TokenCache, TokenState

__all__ = [
    "KeycloakAdminClient",
    "AuthenticationManager",
    "RequestDescriptor",
    "RequestExecutor",
    "TokenCache",
    "TokenState",
    # Configuration
    "AuthMethod",
    "ClientCredentials",
    "ConnectionConfig",
    "PasswordCredentials",
    "TokenCredentials",
    # Exceptions
    "ErrorKind",
    "KeycloakError",
    "KeycloakConfigError",
    "KeycloakAPIError",
    "KeycloakAuthError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "ValidationFailedError",
    "ServerError",
    "NetworkError",
]
