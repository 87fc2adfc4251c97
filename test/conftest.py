"""Shared fixtures for the kcadmin tests.

HTTP is faked with ``FakeSession``, an in-memory stand-in for
``aiohttp.ClientSession``. Responses are registered per (method, url); every
request is recorded in ``session.calls`` and yields to the event loop once,
like a real network round-trip, so concurrent coroutines interleave.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from kcadmin.client import KeycloakAdminClient
from kcadmin.config import AuthMethod, ClientCredentials, ConnectionConfig

BASE_URL = "http://localhost:8080"
REALM = "test-realm"
TOKEN_URL = f"{BASE_URL}/realms/{REALM}/protocol/openid-connect/token"
ADMIN_URL = f"{BASE_URL}/admin/realms/{REALM}"


class FakeClock:
    """Controllable replacement for time.time()."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    """Scripted response. ``raw`` sets the body bytes directly (e.g. invalid UTF-8)."""

    def __init__(
        self,
        status: int = 200,
        json_body: Any = None,
        text: str | None = None,
        headers: dict[str, str] | None = None,
        content_type: str | None = None,
        raw: bytes | None = None,
        charset: str | None = None,
        delay: float = 0,
    ):
        self.status = status
        self.headers = headers or {}
        self.charset = charset
        self.delay = delay
        if json_body is not None:
            self._body = json.dumps(json_body).encode()
            self.content_type = content_type or "application/json"
        elif raw is not None:
            self._body = raw
            self.content_type = content_type or "application/octet-stream"
        else:
            self._body = (text or "").encode()
            self.content_type = content_type or ("text/plain" if text else "application/octet-stream")

    async def read(self) -> bytes:
        return self._body


@dataclass
class RecordedCall:
    method: str
    url: str
    kwargs: dict[str, Any] = field(default_factory=dict)

    @property
    def headers(self) -> dict[str, str]:
        return self.kwargs.get("headers") or {}

    @property
    def params(self) -> list[tuple[str, str]]:
        return self.kwargs.get("params") or []

    @property
    def data(self) -> dict[str, str]:
        return self.kwargs.get("data") or {}


class _RequestContext:
    def __init__(self, session: "FakeSession", call: RecordedCall):
        self._session = session
        self._call = call

    async def __aenter__(self) -> FakeResponse:
        self._session.calls.append(self._call)
        # Simulate the suspension of a real network round-trip
        await asyncio.sleep(0)
        outcome = self._session._next_outcome(self._call.method, self._call.url)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome.delay:
            await asyncio.sleep(outcome.delay)
        return outcome

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FakeSession:
    """Records requests and replays scripted responses.

    Responses registered for the same (method, url) are returned in order; the
    last one is repeated once the others are used up. An exception instance
    is raised instead of returning a response.
    """

    def __init__(self):
        self.closed = False
        self.calls: list[RecordedCall] = []
        self._routes: dict[tuple[str, str], list[FakeResponse | BaseException]] = {}

    def add(self, method: str, url: str, *outcomes: FakeResponse | BaseException) -> None:
        self._routes.setdefault((method.upper(), url), []).extend(outcomes)

    def _next_outcome(self, method: str, url: str) -> FakeResponse | BaseException:
        queue = self._routes.get((method.upper(), url))
        if not queue:
            raise AssertionError(f"Unexpected request: {method} {url}")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def request(self, method: str, url: str, **kwargs: Any) -> _RequestContext:
        return _RequestContext(self, RecordedCall(method.upper(), url, kwargs))

    def post(self, url: str, **kwargs: Any) -> _RequestContext:
        return self.request("POST", url, **kwargs)

    def calls_to(self, url: str, method: str | None = None) -> list[RecordedCall]:
        return [
            call for call in self.calls
            if call.url == url and (method is None or call.method == method.upper())
        ]

    async def close(self) -> None:
        self.closed = True


def token_payload(access_token: str = "mock-access-token-123", **overrides: Any) -> dict[str, Any]:
    """Return a token response matching Keycloak's format."""
    payload = {
        "access_token": access_token,
        "expires_in": 300,
        "refresh_expires_in": 1800,
        "token_type": "Bearer",
        "scope": "profile email",
    }
    payload.update(overrides)
    return payload


def token_response(access_token: str = "mock-access-token-123", **overrides: Any) -> FakeResponse:
    return FakeResponse(200, json_body=token_payload(access_token, **overrides))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client_config():
    """Client-credentials configuration used by most tests."""
    return ConnectionConfig(
        base_url=BASE_URL,
        realm=REALM,
        auth_method=AuthMethod.CLIENT,
        credentials=ClientCredentials(client_id="test-client", client_secret="test-secret"),
    )


@pytest.fixture
def keycloak_client(client_config, session, clock):
    """A KeycloakAdminClient wired to the fake session and clock."""
    return KeycloakAdminClient(client_config, session=session, clock=clock)
