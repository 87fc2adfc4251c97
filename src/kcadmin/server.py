"""Keycloak MCP Server.

Exposes read operations of the Keycloak admin client as MCP (Model Context
Protocol) tools, so an AI assistant can inspect the configured realm:

- Realm settings
- Users (list and detail)
- Clients
- Client scopes with their protocol mappers

Configuration comes from environment variables (see
``ConnectionConfig.from_env``), optionally loaded from a .env file.
"""

import asyncio
import logging
import sys

from dotenv import load_dotenv
from fastmcp import FastMCP

from kcadmin.client import KeycloakAdminClient
from kcadmin.config import ConnectionConfig
from kcadmin.exceptions import KeycloakConfigError, KeycloakError

logger = logging.getLogger(__name__)

# The name identifies this server to MCP clients
mcp = FastMCP("keycloak-werki")

_client: KeycloakAdminClient | None = None


def get_client() -> KeycloakAdminClient:
    """Return the server's Keycloak client, creating it from the environment on first use.

    Raises:
        KeycloakConfigError: If required environment variables are missing
    """
    global _client

    if _client is None:
        config = ConnectionConfig.from_env()
        _client = KeycloakAdminClient(config)
        logger.info(f"Keycloak client initialized for realm '{config.realm}'")
    return _client


async def close_client() -> None:
    """Close the server's Keycloak client and its HTTP session, if one was created."""
    global _client

    if _client is not None:
        await _client.close()
        _client = None
        logger.info("Keycloak client closed")


# =============================================================================
# MCP Tool Definitions
# =============================================================================
# Tools are the functions that AI models can call. Each has a docstring the
# model reads to decide when to call it. Errors are logged and re-raised so
# the MCP client gets proper error info.


async def get_realm() -> dict:
    """Get the settings of the configured Keycloak realm.

    A realm is a space where you manage users, credentials, roles and groups,
    isolated from other realms.

    Example response:
        {"id": "demo", "realm": "demo", "displayName": "Demo", "enabled": true}
    """
    try:
        realm = await get_client().realm.get()
        return realm.to_payload()
    except KeycloakError as e:
        logger.error(f"Failed to get realm: {e}")
        raise


async def get_users(search: str | None = None, max_users: int = 100) -> list[dict]:
    """Get users from the configured realm.

    Args:
        search: Optional text matched against username, email, first and last name
        max_users: Maximum number of users to return (default: 100)

    Example response:
        [
            {
                "id": "8a9b1c2d-3e4f-5a6b-7c8d-9e0f1a2b3c4d",
                "username": "john.doe",
                "email": "john.doe@example.com",
                "enabled": true
            }
        ]
    """
    try:
        users = await get_client().users.find(search=search, max_results=max_users)
        logger.info(f"Retrieved {len(users)} users")
        return [user.to_payload() for user in users]
    except KeycloakError as e:
        logger.error(f"Failed to get users: {e}")
        raise


async def get_user_info(user_id: str) -> dict:
    """Get detailed information about a specific user.

    Args:
        user_id: The unique ID of the user (UUID format, not username!)
                 You can get this from the get_users() tool.
    """
    try:
        user = await get_client().users.get(user_id, user_profile_metadata=True)
        logger.info(f"Retrieved info for user '{user_id}'")
        return user.to_payload()
    except KeycloakError as e:
        logger.error(f"Failed to get user info for '{user_id}': {e}")
        raise


async def get_clients(client_id: str | None = None) -> list[dict]:
    """Get the OAuth2/OIDC clients of the configured realm.

    Args:
        client_id: Optional public client id (e.g. "account") to look up a single client
    """
    try:
        clients = await get_client().clients.find(client_id=client_id)
        logger.info(f"Retrieved {len(clients)} clients")
        return [client.to_payload() for client in clients]
    except KeycloakError as e:
        logger.error(f"Failed to get clients: {e}")
        raise


async def get_client_scopes() -> list[dict]:
    """Get the client scopes of the configured realm, including their protocol mappers."""
    try:
        scopes = await get_client().client_scopes.find_all()
        logger.info(f"Retrieved {len(scopes)} client scopes")
        return [scope.to_payload() for scope in scopes]
    except KeycloakError as e:
        logger.error(f"Failed to get client scopes: {e}")
        raise


# mcp.tool() is applied as a call, not a decorator: the tool functions stay plain coroutines
for _tool in (get_realm, get_users, get_user_info, get_clients, get_client_scopes):
    mcp.tool()(_tool)


async def serve() -> None:
    """Run the MCP server on stdio and release the client when it stops."""
    try:
        await mcp.run_async(transport="stdio")
    finally:
        await close_client()


def main() -> None:
    """Main entry point for the MCP server.

    Starts the server on stdio transport, the standard way MCP servers
    communicate with clients.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    load_dotenv()

    # Fail at startup rather than on the first tool call
    try:
        get_client()
    except KeycloakConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logger.info("Starting Keycloak MCP server...")
    asyncio.run(serve())


if __name__ == "__main__":
    main()
