"""Credential strategies: the ways a token is obtained from Keycloak.

Each authentication method maps to a pair of coroutines, ``acquire`` and
(where the grant supports it) ``refresh``. They are pure functions of the
connection configuration; all caching and deduplication lives in
``kcadmin.auth``.

The token endpoint is part of the OpenID Connect standard:
{base_url}/realms/{realm}/protocol/openid-connect/token
"""

import base64
import binascii
import json
import logging
from collections.abc import Awaitable, Callable
from typing import NamedTuple

import aiohttp
from pydantic import ValidationError

from kcadmin.classifier import TRANSPORT_ERRORS, decode_body, error_message, load_payload
from kcadmin.config import AuthMethod, ConnectionConfig
from kcadmin.exceptions import KeycloakAuthError
from kcadmin.models import TokenResponse
from kcadmin.token_cache import Clock, TokenState

logger = logging.getLogger(__name__)

AcquireFn = Callable[[ConnectionConfig, aiohttp.ClientSession, Clock], Awaitable[TokenState]]
RefreshFn = Callable[[ConnectionConfig, aiohttp.ClientSession, TokenState, Clock], Awaitable[TokenState]]


class CredentialStrategy(NamedTuple):
    acquire: AcquireFn
    refresh: RefreshFn | None = None


async def _request_token(
    config: ConnectionConfig,
    session: aiohttp.ClientSession,
    form: dict[str, str],
    clock: Clock,
) -> TokenState:
    """POST a grant to the token endpoint and parse the response.

    Raises:
        KeycloakAuthError: On a non-2xx status, a transport error or a
            malformed token response
    """
    token_endpoint = config.token_endpoint
    grant_type = form["grant_type"]
    issued_at = clock()

    try:
        async with session.post(
            token_endpoint,
            data=form,
            timeout=aiohttp.ClientTimeout(total=config.timeout),
        ) as response:
            status = response.status
            charset = response.charset
            raw = await response.read()
    except TRANSPORT_ERRORS as e:
        logger.error(f"Failed to reach token endpoint {token_endpoint}: {e}")
        raise KeycloakAuthError(f"Authentication failed: {e}") from e

    try:
        text = decode_body(raw, charset)
    except UnicodeDecodeError as e:
        logger.error(f"Token endpoint returned an undecodable body (HTTP {status}): {e}")
        raise KeycloakAuthError(
            f"Invalid token response format: body is not valid {charset or 'utf-8'} (HTTP {status})",
            status_code=status,
        ) from e

    if not 200 <= status < 300:
        payload = load_payload(text)
        detail = error_message(status, payload)
        logger.error(f"Token request ({grant_type}) rejected with HTTP {status}: {detail}")
        raise KeycloakAuthError(
            f"Authentication failed: HTTP {status}: {detail}",
            status_code=status,
            payload=payload,
        )

    try:
        token_data = TokenResponse.model_validate_json(text)
    except ValidationError as e:
        logger.error(f"Failed to parse token response: {e}")
        raise KeycloakAuthError(
            f"Invalid token response format: {e}",
            status_code=status,
            payload=load_payload(text),
        ) from e

    logger.debug(f"Obtained token via {grant_type} grant (expires in {token_data.expires_in}s)")
    return TokenState.from_response(token_data, issued_at)


async def acquire_client_credentials(
    config: ConnectionConfig, session: aiohttp.ClientSession, clock: Clock
) -> TokenState:
    """Exchange client id and secret for a token (no refresh token is issued)."""
    credentials = config.credentials
    form = {
        "grant_type": "client_credentials",
        "client_id": credentials.client_id,
        "client_secret": credentials.client_secret,
    }
    return await _request_token(config, session, form, clock)


def _password_client_fields(config: ConnectionConfig) -> dict[str, str]:
    credentials = config.credentials
    fields = {"client_id": credentials.client_id}
    if credentials.client_secret:
        fields["client_secret"] = credentials.client_secret
    return fields


async def acquire_password(
    config: ConnectionConfig, session: aiohttp.ClientSession, clock: Clock
) -> TokenState:
    """Exchange username and password for a token, usually with a refresh token."""
    credentials = config.credentials
    form = {
        "grant_type": "password",
        "username": credentials.username,
        "password": credentials.password,
        **_password_client_fields(config),
    }
    return await _request_token(config, session, form, clock)


async def refresh_password(
    config: ConnectionConfig,
    session: aiohttp.ClientSession,
    previous: TokenState,
    clock: Clock,
) -> TokenState:
    """Use the refresh token instead of re-sending the password."""
    if not previous.refresh_token:
        raise KeycloakAuthError("No refresh token available")

    form = {
        "grant_type": "refresh_token",
        "refresh_token": previous.refresh_token,
        **_password_client_fields(config),
    }
    return await _request_token(config, session, form, clock)


def jwt_expiry(token: str) -> float | None:
    """Read the ``exp`` claim of a JWT without verifying it.

    Returns None if the token isn't a decodable JWT or has no numeric exp.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None

    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(segment))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    exp = claims.get("exp") if isinstance(claims, dict) else None
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return float(exp)


async def acquire_static_token(
    config: ConnectionConfig, session: aiohttp.ClientSession, clock: Clock
) -> TokenState:
    """Return the caller-supplied token verbatim. Never touches the network."""
    token = config.credentials.token
    return TokenState(access_token=token, expires_at=jwt_expiry(token))


STRATEGIES: dict[AuthMethod, CredentialStrategy] = {
    AuthMethod.CLIENT: CredentialStrategy(acquire=acquire_client_credentials),
    AuthMethod.PASSWORD: CredentialStrategy(acquire=acquire_password, refresh=refresh_password),
    AuthMethod.TOKEN: CredentialStrategy(acquire=acquire_static_token),
}


def get_strategy(method: AuthMethod) -> CredentialStrategy:
    return STRATEGIES[AuthMethod(method)]


__all__ = [
    "CredentialStrategy",
    "STRATEGIES",
    "get_strategy",
    "acquire_client_credentials",
    "acquire_password",
    "refresh_password",
    "acquire_static_token",
    "jwt_expiry",
]
