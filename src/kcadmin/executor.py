"""Authenticated request execution against the Keycloak Admin REST API.

Every resource module goes through ``RequestExecutor.execute``. It attaches a
bearer token, performs the call, retries once with a fresh token when the
server answers 401/403, and turns every other failure into a classified
error. It does not reshape response bodies; that is the resource modules' job.
"""

import json
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple
from urllib.parse import quote

import aiohttp

from kcadmin.auth import AuthenticationManager
from kcadmin.classifier import (
    TRANSPORT_ERRORS,
    classify_response,
    classify_transport_error,
    decode_body,
    load_payload,
)
from kcadmin.config import ConnectionConfig
from kcadmin.exceptions import KeycloakAPIError

QueryValue = str | int | float | bool | Iterable[str | int | bool] | None

# Statuses that mean "the token was rejected": refresh and retry once.
AUTH_RETRY_STATUSES = frozenset({401, 403})


@dataclass(frozen=True)
class RequestDescriptor:
    """One admin API call.

    Attributes:
        method: HTTP method (GET, POST, PUT, DELETE, ...)
        path: Path relative to ``{base_url}/admin/realms/{realm}/``,
            e.g. "users/8a9b1c2d" or "" for the realm itself
        query: Query parameters; None values are omitted
        body: JSON-serializable request body
        headers: Extra request headers
    """

    method: str
    path: str = ""
    query: Mapping[str, QueryValue] | None = None
    body: Any = None
    headers: Mapping[str, str] | None = None


class _Reply(NamedTuple):
    status: int
    headers: Mapping[str, str]
    body: Any


def path_segment(value: str) -> str:
    """Percent-encode a value for use as a single path segment."""
    return quote(str(value), safe="")


def serialize_query(query: Mapping[str, QueryValue] | None) -> list[tuple[str, str]]:
    """Flatten query parameters into key/value pairs.

    Booleans (also inside iterables) become "true"/"false", iterables become
    repeated keys and None values are dropped.
    """
    params: list[tuple[str, str]] = []
    for key, value in (query or {}).items():
        if value is None:
            continue
        if isinstance(value, (str, int, float)):
            params.append((key, _query_scalar(value)))
        else:
            params.extend((key, _query_scalar(item)) for item in value)
    return params


def _query_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RequestExecutor:
    """Performs authenticated admin API requests for one client."""

    def __init__(
        self,
        config: ConnectionConfig,
        auth: AuthenticationManager,
        session_provider: Callable[[], Awaitable[aiohttp.ClientSession]],
    ):
        self._config = config
        self._auth = auth
        self._session_provider = session_provider

    def build_url(self, path: str) -> str:
        path = path.lstrip("/")
        if not path:
            return self._config.admin_url
        return f"{self._config.admin_url}/{path}"

    async def execute(self, descriptor: RequestDescriptor) -> Any:
        """Perform the request and return the parsed response body.

        Returns:
            Parsed JSON (object or array), response text for non-JSON
            content, or None for 204 No Content / an empty body

        Raises:
            KeycloakAuthError: If no token could be acquired
            KeycloakAPIError: The classified failure of the request
        """
        reply = await self._send_with_retry(descriptor)
        return reply.body

    async def execute_create(self, descriptor: RequestDescriptor) -> str | None:
        """Perform a create request and return the new resource's id.

        Keycloak answers "201 Created" with an empty body and the URL of the
        new resource in the Location header; the id is its last segment.
        """
        reply = await self._send_with_retry(descriptor)
        location = reply.headers.get("Location")
        if not location:
            return None
        return location.rstrip("/").rsplit("/", 1)[-1]

    async def _send_with_retry(self, descriptor: RequestDescriptor) -> _Reply:
        token = await self._auth.get_valid_token()
        reply = await self._send(descriptor, token)

        if reply.status in AUTH_RETRY_STATUSES:
            # The token may have been revoked or expired server-side: retry exactly once
            token = await self._auth.get_valid_token(rejected_token=token)
            reply = await self._send(descriptor, token)

        if 200 <= reply.status < 300:
            return reply

        raise classify_response(reply.status, reply.body, self.build_url(descriptor.path))

    async def _send(self, descriptor: RequestDescriptor, token: str) -> _Reply:
        url = self.build_url(descriptor.path)
        headers = {"Accept": "application/json"}
        if descriptor.headers:
            headers.update(descriptor.headers)
        headers["Authorization"] = f"Bearer {token}"

        kwargs: dict[str, Any] = {
            "params": serialize_query(descriptor.query),
            "headers": headers,
            "timeout": aiohttp.ClientTimeout(total=self._config.timeout),
        }
        if descriptor.body is not None:
            kwargs["json"] = descriptor.body

        session = await self._session_provider()
        try:
            async with session.request(descriptor.method.upper(), url, **kwargs) as response:
                raw = await response.read()
                body = _parse_body(response.status, response.content_type, response.charset, raw, url)
                return _Reply(response.status, response.headers, body)
        except TRANSPORT_ERRORS as e:
            raise classify_transport_error(e, url) from e


def _parse_body(status: int, content_type: str | None, charset: str | None, raw: bytes, url: str) -> Any:
    if status == 204 or not raw:
        return None

    if not 200 <= status < 300:
        # only used for the error message, so undecodable bytes are replaced
        return load_payload(decode_body(raw, charset, errors="replace"))

    try:
        text = decode_body(raw, charset)
    except UnicodeDecodeError as e:
        raise KeycloakAPIError(
            f"Undecodable response body from {url}: {e}",
            status_code=status,
        ) from e

    if content_type and "json" in content_type:
        try:
            return json.loads(text)
        except ValueError as e:
            raise KeycloakAPIError(
                f"Invalid JSON in response from {url}",
                status_code=status,
                payload=text,
            ) from e

    return text


__all__ = [
    "RequestDescriptor",
    "RequestExecutor",
    "QueryValue",
    "AUTH_RETRY_STATUSES",
    "path_segment",
    "serialize_query",
]
