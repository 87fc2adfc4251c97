"""Exceptions raised by the Keycloak admin client.

Every failed request surfaces as exactly one subclass of ``KeycloakAPIError``.
The ``kind`` attribute is the stable vocabulary resource modules and callers
depend on; the concrete classes exist so callers can also use ``except``.
"""

from enum import Enum
from typing import Any, ClassVar


class ErrorKind(str, Enum):
    """Closed set of error kinds produced by the error classifier."""

    AUTHENTICATION_FAILED = "AuthenticationFailed"
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    VALIDATION_FAILED = "ValidationFailed"
    SERVER_ERROR = "ServerError"
    NETWORK_ERROR = "NetworkError"
    UNKNOWN_ERROR = "UnknownError"


class KeycloakError(Exception):
    """Base exception for all Keycloak-related errors.

    Catch this to handle configuration and API failures with a single
    except clause.
    """
    pass


class KeycloakConfigError(KeycloakError):
    """Raised when there's a configuration error.

    Examples:
        - Missing environment variables
        - Unknown authentication method
        - Empty required credentials
    """
    pass


class KeycloakAPIError(KeycloakError):
    """A classified failure of a token or admin API request.

    Attributes:
        kind: The error kind (see ``ErrorKind``)
        status_code: HTTP status code, or None when no response was received
        payload: The server's raw error body (parsed JSON or text), if any
    """

    kind: ClassVar[ErrorKind] = ErrorKind.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ):
        """Initialize the API error.

        Args:
            message: Human-readable error description
            status_code: HTTP status code from the failed request
            payload: Raw error body returned by the server
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    @property
    def cause(self) -> BaseException | None:
        """The underlying exception this error was raised from, if any."""
        return self.__cause__

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"status_code={self.status_code!r}, message={self.message!r})"
        )


class KeycloakAuthError(KeycloakAPIError):
    """Raised when acquiring a token from Keycloak fails.

    Examples:
        - Invalid client credentials or user password
        - Token endpoint unreachable
        - Malformed token response
    """

    kind = ErrorKind.AUTHENTICATION_FAILED


class UnauthorizedError(KeycloakAPIError):
    """401/403 from the admin API even after retrying with a fresh token."""

    kind = ErrorKind.UNAUTHORIZED


class NotFoundError(KeycloakAPIError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(KeycloakAPIError):
    """409, e.g. a user or client scope with the same name already exists."""

    kind = ErrorKind.CONFLICT


class ValidationFailedError(KeycloakAPIError):
    """400 with a structured error body describing what was rejected."""

    kind = ErrorKind.VALIDATION_FAILED


class ServerError(KeycloakAPIError):
    kind = ErrorKind.SERVER_ERROR


class NetworkError(KeycloakAPIError):
    """No response was received (connection refused, DNS failure, timeout)."""

    kind = ErrorKind.NETWORK_ERROR


__all__ = [
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
