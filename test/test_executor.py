"""Tests for the RequestExecutor: URL building, auth headers, retry and errors."""

import asyncio

import aiohttp
import pytest

from conftest import ADMIN_URL, BASE_URL, REALM, TOKEN_URL, FakeResponse, token_response
from kcadmin.client import KeycloakAdminClient
from kcadmin.config import AuthMethod, ConnectionConfig, TokenCredentials
from kcadmin.exceptions import (
    ConflictError,
    ErrorKind,
    KeycloakAPIError,
    KeycloakAuthError,
    NetworkError,
    NotFoundError,
    ServerError,
    UnauthorizedError,
    ValidationFailedError,
)
from kcadmin.executor import RequestDescriptor, serialize_query

USERS_URL = f"{ADMIN_URL}/users"


@pytest.fixture
def executor(keycloak_client):
    return keycloak_client.executor


# =============================================================================
# Query serialization
# =============================================================================


def test_serialize_query_formats_values():
    """Test booleans, lists, numbers and None in query parameters."""
    params = serialize_query(
        {
            "briefRepresentation": True,
            "exact": False,
            "max": 50,
            "search": "john",
            "q": ["a:1", "b:2"],
            "email": None,
        }
    )

    assert params == [
        ("briefRepresentation", "true"),
        ("exact", "false"),
        ("max", "50"),
        ("search", "john"),
        ("q", "a:1"),
        ("q", "b:2"),
    ]


def test_serialize_query_booleans_inside_lists():
    assert serialize_query({"enabled": [True, False], "first": (0, 10)}) == [
        ("enabled", "true"),
        ("enabled", "false"),
        ("first", "0"),
        ("first", "10"),
    ]


def test_serialize_query_empty():
    assert serialize_query(None) == []
    assert serialize_query({"first": None}) == []


def test_build_url(executor):
    assert executor.build_url("users/123") == f"{ADMIN_URL}/users/123"
    assert executor.build_url("/users") == f"{ADMIN_URL}/users"
    assert executor.build_url("") == ADMIN_URL


# =============================================================================
# Successful requests
# =============================================================================


async def test_execute_attaches_bearer_token(executor, session):
    """Test that the request carries the acquired token and query parameters."""
    session.add("POST", TOKEN_URL, token_response("token-1"))
    session.add("GET", USERS_URL, FakeResponse(200, json_body=[{"id": "u1", "username": "john.doe"}]))

    result = await executor.execute(RequestDescriptor("GET", "users", query={"max": 10, "exact": True}))

    assert result == [{"id": "u1", "username": "john.doe"}]
    call = session.calls_to(USERS_URL)[0]
    assert call.headers["Authorization"] == "Bearer token-1"
    assert call.headers["Accept"] == "application/json"
    assert call.params == [("max", "10"), ("exact", "true")]


async def test_execute_sends_json_body_and_custom_headers(executor, session):
    session.add("POST", TOKEN_URL, token_response())
    session.add("PUT", f"{USERS_URL}/u1", FakeResponse(204))

    result = await executor.execute(
        RequestDescriptor("put", "users/u1", body={"firstName": "John"}, headers={"X-Trace": "abc"})
    )

    assert result is None
    call = session.calls_to(f"{USERS_URL}/u1", "PUT")[0]
    assert call.kwargs["json"] == {"firstName": "John"}
    assert call.headers["X-Trace"] == "abc"
    assert call.headers["Authorization"].startswith("Bearer ")


async def test_execute_without_body_sends_no_json(executor, session):
    session.add("POST", TOKEN_URL, token_response())
    session.add("DELETE", f"{USERS_URL}/u1", FakeResponse(204))

    await executor.execute(RequestDescriptor("DELETE", "users/u1"))

    assert "json" not in session.calls_to(f"{USERS_URL}/u1")[0].kwargs


async def test_execute_returns_text_for_non_json_content(executor, session):
    session.add("POST", TOKEN_URL, token_response())
    session.add("GET", f"{ADMIN_URL}/keys", FakeResponse(200, text="plain body"))

    assert await executor.execute(RequestDescriptor("GET", "keys")) == "plain body"


async def test_execute_invalid_json_is_unknown_error(executor, session):
    session.add("POST", TOKEN_URL, token_response())
    session.add("GET", USERS_URL, FakeResponse(200, text="{not json", content_type="application/json"))

    with pytest.raises(KeycloakAPIError) as exc_info:
        await executor.execute(RequestDescriptor("GET", "users"))

    assert exc_info.value.kind is ErrorKind.UNKNOWN_ERROR



async def test_execute_undecodable_body_is_unknown_error(executor, session):
    """Test that a 2xx body that is not valid UTF-8 raises a classified error."""
    session.add("POST", TOKEN_URL, token_response())
    session.add(
        "GET",
        USERS_URL,
        FakeResponse(200, raw=b'{"x": "\xff\xfe"}', content_type="application/json", charset="utf-8"),
    )

    with pytest.raises(KeycloakAPIError) as exc_info:
        await executor.execute(RequestDescriptor("GET", "users"))

    assert exc_info.value.kind is ErrorKind.UNKNOWN_ERROR
    assert exc_info.value.status_code == 200
    assert isinstance(exc_info.value.cause, UnicodeDecodeError)


async def test_undecodable_error_body_is_still_classified(executor, session):
    session.add("POST", TOKEN_URL, token_response())
    session.add("GET", USERS_URL, FakeResponse(502, raw=b"Bad gateway \xff", content_type="text/plain"))

    with pytest.raises(ServerError, match="Bad gateway") as exc_info:
        await executor.execute(RequestDescriptor("GET", "users"))

    assert exc_info.value.status_code == 502

async def test_execute_create_returns_id_from_location(executor, session):
    """Test that the id of a created resource is read from the Location header."""
    session.add("POST", TOKEN_URL, token_response())
    session.add(
        "POST",
        USERS_URL,
        FakeResponse(201, headers={"Location": f"{USERS_URL}/0f9e8d7c-new-user"}),
    )

    user_id = await executor.execute_create(RequestDescriptor("POST", "users", body={"username": "jane"}))

    assert user_id == "0f9e8d7c-new-user"


async def test_execute_create_without_location_returns_none(executor, session):
    session.add("POST", TOKEN_URL, token_response())
    session.add("POST", USERS_URL, FakeResponse(201))

    assert await executor.execute_create(RequestDescriptor("POST", "users", body={})) is None


# =============================================================================
# Retry on expired token
# =============================================================================


async def test_401_triggers_exactly_one_retry_with_fresh_token(executor, session):
    """Test that a 401 refreshes the token and retries the request once."""
    session.add("POST", TOKEN_URL, token_response("old-token"), token_response("new-token"))
    session.add(
        "GET",
        USERS_URL,
        FakeResponse(401, json_body={"error": "HTTP 401 Unauthorized"}),
        FakeResponse(200, json_body=[]),
    )

    result = await executor.execute(RequestDescriptor("GET", "users"))

    assert result == []
    api_calls = session.calls_to(USERS_URL)
    assert len(api_calls) == 2
    assert api_calls[0].headers["Authorization"] == "Bearer old-token"
    assert api_calls[1].headers["Authorization"] == "Bearer new-token"
    assert len(session.calls_to(TOKEN_URL)) == 2


async def test_401_on_retry_is_surfaced_as_unauthorized(executor, session):
    """Test that a second 401 is not retried again."""
    session.add("POST", TOKEN_URL, token_response("token-1"), token_response("token-2"), token_response("token-3"))
    session.add("GET", USERS_URL, FakeResponse(401, json_body={"error": "HTTP 401 Unauthorized"}))

    with pytest.raises(UnauthorizedError) as exc_info:
        await executor.execute(RequestDescriptor("GET", "users"))

    assert exc_info.value.kind is ErrorKind.UNAUTHORIZED
    assert exc_info.value.status_code == 401
    assert len(session.calls_to(USERS_URL)) == 2
    assert len(session.calls_to(TOKEN_URL)) == 2


async def test_403_is_retried_once_then_unauthorized(executor, session):
    session.add("POST", TOKEN_URL, token_response("token-1"), token_response("token-2"))
    session.add("GET", USERS_URL, FakeResponse(403, json_body={"error": "unknown_error"}))

    with pytest.raises(UnauthorizedError) as exc_info:
        await executor.execute(RequestDescriptor("GET", "users"))

    assert exc_info.value.status_code == 403
    assert len(session.calls_to(USERS_URL)) == 2


async def test_retry_fails_when_token_cannot_be_refreshed(executor, session):
    """Test that a failed refresh during retry surfaces as AuthenticationFailed."""
    session.add("POST", TOKEN_URL, token_response("token-1"), FakeResponse(401, json_body={"error": "invalid_client"}))
    session.add("GET", USERS_URL, FakeResponse(401))

    with pytest.raises(KeycloakAuthError):
        await executor.execute(RequestDescriptor("GET", "users"))

    assert len(session.calls_to(USERS_URL)) == 1


async def test_concurrent_401s_share_one_refresh(executor, session):
    """Test that requests rejected together reuse a single forced refresh."""
    session.add("POST", TOKEN_URL, token_response("token-1"), token_response("token-2"))
    session.add(
        "GET",
        USERS_URL,
        FakeResponse(401),
        FakeResponse(401),
        FakeResponse(200, json_body=[]),
    )

    results = await asyncio.gather(
        executor.execute(RequestDescriptor("GET", "users")),
        executor.execute(RequestDescriptor("GET", "users")),
    )

    assert results == [[], []]
    assert len(session.calls_to(TOKEN_URL)) == 2


async def test_staggered_401s_reuse_the_refreshed_token(executor, session):
    """Test that a 401 arriving after the refresh completed does not refresh again."""
    session.add("POST", TOKEN_URL, token_response("token-1"), token_response("token-2"), token_response("token-3"))
    session.add(
        "GET",
        USERS_URL,
        FakeResponse(401),
        FakeResponse(401, delay=0.01),
        FakeResponse(401, delay=0.02),
        FakeResponse(200, json_body=[]),
    )

    results = await asyncio.gather(
        *(executor.execute(RequestDescriptor("GET", "users")) for _ in range(3))
    )

    assert results == [[], [], []]
    assert len(session.calls_to(TOKEN_URL)) == 2
    retries = session.calls_to(USERS_URL)[3:]
    assert [call.headers["Authorization"] for call in retries] == ["Bearer token-2"] * 3


# =============================================================================
# Error classification
# =============================================================================


async def test_404_is_not_found_without_refresh(executor, session):
    """Test that a 404 is classified as NotFound and never retried."""
    session.add("POST", TOKEN_URL, token_response())
    session.add("GET", f"{USERS_URL}/missing", FakeResponse(404, json_body={"error": "User not found"}))

    with pytest.raises(NotFoundError) as exc_info:
        await executor.execute(RequestDescriptor("GET", "users/missing"))

    assert exc_info.value.kind is ErrorKind.NOT_FOUND
    assert exc_info.value.status_code == 404
    assert exc_info.value.payload == {"error": "User not found"}
    assert len(session.calls_to(f"{USERS_URL}/missing")) == 1
    assert len(session.calls_to(TOKEN_URL)) == 1


@pytest.mark.parametrize(
    "status, body, error_class",
    [
        (409, {"errorMessage": "User exists with same username"}, ConflictError),
        (400, {"errorMessage": "Invalid value for: email"}, ValidationFailedError),
        (500, {"error": "unknown_error"}, ServerError),
        (502, None, ServerError),
        (418, None, KeycloakAPIError),
    ],
)
async def test_error_status_is_classified(executor, session, status, body, error_class):
    session.add("POST", TOKEN_URL, token_response())
    response = FakeResponse(status, json_body=body) if body else FakeResponse(status)
    session.add("POST", USERS_URL, response)

    with pytest.raises(error_class) as exc_info:
        await executor.execute(RequestDescriptor("POST", "users", body={"username": "john"}))

    assert exc_info.value.status_code == status
    assert len(session.calls_to(USERS_URL)) == 1


async def test_conflict_message_comes_from_server(executor, session):
    session.add("POST", TOKEN_URL, token_response())
    session.add("POST", USERS_URL, FakeResponse(409, json_body={"errorMessage": "User exists with same username"}))

    with pytest.raises(ConflictError, match="User exists with same username"):
        await executor.execute_create(RequestDescriptor("POST", "users", body={"username": "john"}))


async def test_connection_error_is_network_error(executor, session):
    """Test that a transport failure is classified as NetworkError and chained."""
    session.add("POST", TOKEN_URL, token_response())
    session.add("GET", USERS_URL, aiohttp.ClientConnectionError("Connection refused"))

    with pytest.raises(NetworkError) as exc_info:
        await executor.execute(RequestDescriptor("GET", "users"))

    assert exc_info.value.kind is ErrorKind.NETWORK_ERROR
    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.cause, aiohttp.ClientConnectionError)


async def test_timeout_is_network_error(executor, session):
    session.add("POST", TOKEN_URL, token_response())
    session.add("GET", USERS_URL, asyncio.TimeoutError())

    with pytest.raises(NetworkError):
        await executor.execute(RequestDescriptor("GET", "users"))


# =============================================================================
# Static token
# =============================================================================


async def test_static_token_is_sent_verbatim(session, clock):
    """Test that the token auth method puts exactly the supplied token in the header."""
    config = ConnectionConfig(
        base_url=BASE_URL,
        realm=REALM,
        auth_method=AuthMethod.TOKEN,
        credentials=TokenCredentials(token="my-static-token"),
    )
    client = KeycloakAdminClient(config, session=session, clock=clock)
    session.add("GET", USERS_URL, FakeResponse(200, json_body=[]))

    await client.executor.execute(RequestDescriptor("GET", "users"))

    assert session.calls_to(USERS_URL)[0].headers["Authorization"] == "Bearer my-static-token"
    assert session.calls_to(TOKEN_URL) == []
