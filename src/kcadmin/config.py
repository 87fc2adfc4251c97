"""Connection configuration for the Keycloak admin client."""

import os
from dataclasses import dataclass, field
from enum import Enum

from kcadmin.exceptions import KeycloakConfigError

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_PASSWORD_CLIENT_ID = "admin-cli"


class AuthMethod(str, Enum):
    """How the client obtains its bearer token."""

    CLIENT = "client"
    PASSWORD = "password"
    TOKEN = "token"


@dataclass(frozen=True)
class ClientCredentials:
    """OAuth2 client credentials grant (service account)."""

    client_id: str
    client_secret: str = field(repr=False)


@dataclass(frozen=True)
class PasswordCredentials:
    """Resource owner password grant, e.g. an admin user via admin-cli."""

    username: str
    password: str = field(repr=False)
    client_id: str = DEFAULT_PASSWORD_CLIENT_ID
    client_secret: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class TokenCredentials:
    """A pre-obtained access token supplied by the caller."""

    token: str = field(repr=False)


Credentials = ClientCredentials | PasswordCredentials | TokenCredentials

_CREDENTIAL_TYPES: dict[AuthMethod, type] = {
    AuthMethod.CLIENT: ClientCredentials,
    AuthMethod.PASSWORD: PasswordCredentials,
    AuthMethod.TOKEN: TokenCredentials,
}


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable settings for one Keycloak admin client.

    Attributes:
        base_url: The base URL of the Keycloak server (e.g. "http://localhost:8080")
        realm: The realm administered through the admin API
        auth_method: Which credential strategy to use
        credentials: Credentials matching ``auth_method``
        auth_realm: Realm whose token endpoint issues the token (default: ``realm``)
        timeout: Total timeout in seconds for each HTTP request

    Raises:
        KeycloakConfigError: If any required value is empty or the credentials
            don't match the authentication method
    """

    base_url: str
    realm: str
    auth_method: AuthMethod
    credentials: Credentials
    auth_realm: str | None = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not self.base_url:
            raise KeycloakConfigError("base_url cannot be empty")
        if not self.realm:
            raise KeycloakConfigError("realm cannot be empty")

        try:
            auth_method = AuthMethod(self.auth_method)
        except ValueError:
            allowed = ", ".join(m.value for m in AuthMethod)
            raise KeycloakConfigError(
                f"Unknown auth_method '{self.auth_method}' (expected one of: {allowed})"
            ) from None

        expected = _CREDENTIAL_TYPES[auth_method]
        if not isinstance(self.credentials, expected):
            raise KeycloakConfigError(
                f"auth_method '{auth_method.value}' requires {expected.__name__}, "
                f"got {type(self.credentials).__name__}"
            )
        _validate_credentials(self.credentials)

        if self.timeout <= 0:
            raise KeycloakConfigError("timeout must be positive")

        object.__setattr__(self, "auth_method", auth_method)
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def token_realm(self) -> str:
        return self.auth_realm or self.realm

    @property
    def token_endpoint(self) -> str:
        return f"{self.base_url}/realms/{self.token_realm}/protocol/openid-connect/token"

    @property
    def admin_url(self) -> str:
        return f"{self.base_url}/admin/realms/{self.realm}"

    @classmethod
    def from_env(cls) -> "ConnectionConfig":
        """Build a configuration from environment variables.

        Reads KEYCLOAK_URL, KEYCLOAK_REALM, KEYCLOAK_AUTH_METHOD (default
        "client"), KEYCLOAK_AUTH_REALM and the variables required by the chosen
        method: CLIENT_ID/CLIENT_SECRET, KEYCLOAK_USERNAME/KEYCLOAK_PASSWORD, or
        KEYCLOAK_TOKEN. All missing variables are reported at once.

        Raises:
            KeycloakConfigError: If any required environment variable is missing
        """
        env = {
            name: os.getenv(name, "").strip()
            for name in (
                "KEYCLOAK_URL",
                "KEYCLOAK_REALM",
                "KEYCLOAK_AUTH_METHOD",
                "KEYCLOAK_AUTH_REALM",
                "KEYCLOAK_TIMEOUT",
                "CLIENT_ID",
                "CLIENT_SECRET",
                "KEYCLOAK_USERNAME",
                "KEYCLOAK_PASSWORD",
                "KEYCLOAK_TOKEN",
            )
        }

        method_name = env["KEYCLOAK_AUTH_METHOD"] or AuthMethod.CLIENT.value
        try:
            method = AuthMethod(method_name)
        except ValueError:
            raise KeycloakConfigError(f"Unknown KEYCLOAK_AUTH_METHOD '{method_name}'") from None

        required = ["KEYCLOAK_URL", "KEYCLOAK_REALM"]
        if method is AuthMethod.CLIENT:
            required += ["CLIENT_ID", "CLIENT_SECRET"]
        elif method is AuthMethod.PASSWORD:
            required += ["KEYCLOAK_USERNAME", "KEYCLOAK_PASSWORD"]
        else:
            required += ["KEYCLOAK_TOKEN"]

        missing = [name for name in required if not env[name]]
        if missing:
            raise KeycloakConfigError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Please check your .env file."
            )

        credentials: Credentials
        if method is AuthMethod.CLIENT:
            credentials = ClientCredentials(env["CLIENT_ID"], env["CLIENT_SECRET"])
        elif method is AuthMethod.PASSWORD:
            credentials = PasswordCredentials(
                username=env["KEYCLOAK_USERNAME"],
                password=env["KEYCLOAK_PASSWORD"],
                client_id=env["CLIENT_ID"] or DEFAULT_PASSWORD_CLIENT_ID,
                client_secret=env["CLIENT_SECRET"] or None,
            )
        else:
            credentials = TokenCredentials(env["KEYCLOAK_TOKEN"])

        timeout = DEFAULT_TIMEOUT_SECONDS
        if env["KEYCLOAK_TIMEOUT"]:
            try:
                timeout = float(env["KEYCLOAK_TIMEOUT"])
            except ValueError:
                raise KeycloakConfigError(
                    f"KEYCLOAK_TIMEOUT must be a number, got '{env['KEYCLOAK_TIMEOUT']}'"
                ) from None

        return cls(
            base_url=env["KEYCLOAK_URL"],
            realm=env["KEYCLOAK_REALM"],
            auth_method=method,
            credentials=credentials,
            auth_realm=env["KEYCLOAK_AUTH_REALM"] or None,
            timeout=timeout,
        )


def _validate_credentials(credentials: Credentials) -> None:
    if isinstance(credentials, ClientCredentials):
        if not credentials.client_id:
            raise KeycloakConfigError("client_id cannot be empty")
        if not credentials.client_secret:
            raise KeycloakConfigError("client_secret cannot be empty")
    elif isinstance(credentials, PasswordCredentials):
        if not credentials.username:
            raise KeycloakConfigError("username cannot be empty")
        if not credentials.password:
            raise KeycloakConfigError("password cannot be empty")
        if not credentials.client_id:
            raise KeycloakConfigError("client_id cannot be empty")
    elif not credentials.token:
        raise KeycloakConfigError("token cannot be empty")


__all__ = [
    "AuthMethod",
    "ClientCredentials",
    "PasswordCredentials",
    "TokenCredentials",
    "Credentials",
    "ConnectionConfig",
    "DEFAULT_TIMEOUT_SECONDS",
]
