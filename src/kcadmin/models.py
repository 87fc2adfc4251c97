"""Type definitions for Keycloak API payloads.

Pydantic models give structured, validated types for what the admin API
returns and accepts. Python attributes are snake_case; on the wire Keycloak
uses camelCase, so every resource model serializes by alias:

    >>> UserRepresentation(username="john.doe", first_name="John").to_payload()
    {'username': 'john.doe', 'firstName': 'John'}

Only the commonly used fields are declared. Anything else Keycloak sends is
kept (``extra="allow"``) and sent back unchanged on update.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class KeycloakModel(BaseModel):
    """Base class for admin API representations."""

    model_config = ConfigDict(
        # Allow extra fields from API that we don't explicitly define
        extra="allow",
        # Accept both "first_name" and "firstName" when constructing
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_payload(self) -> dict[str, Any]:
        """Serialize for a request body: camelCase keys, unset fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TokenResponse(BaseModel):
    """Represents an OAuth2 token response.

    Example JSON:
    {
        "access_token": "eyJhbGciOiJSUzI1NiIs...",
        "expires_in": 300,
        "refresh_expires_in": 1800,
        "refresh_token": "eyJhbGciOiJIUzUxMiIs...",
        "token_type": "Bearer",
        "not-before-policy": 0,
        "scope": "profile email"
    }

    The client credentials grant does not return a refresh token.
    A ``refresh_expires_in`` of 0 means the refresh token does not expire
    (offline tokens).
    """

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(min_length=1)
    expires_in: int = Field(gt=0)
    refresh_token: str | None = None
    refresh_expires_in: int | None = None
    token_type: str = "Bearer"
    scope: str | None = None


class RealmRepresentation(KeycloakModel):
    id: str | None = None
    realm: str | None = None
    display_name: str | None = None
    enabled: bool | None = None
    ssl_required: str | None = None
    registration_allowed: bool | None = None
    login_with_email_allowed: bool | None = None
    access_token_lifespan: int | None = None


class UserRepresentation(KeycloakModel):
    """Represents a Keycloak user.

    Example JSON from Keycloak API:
    {
        "id": "8a9b1c2d-3e4f-5a6b-7c8d-9e0f1a2b3c4d",
        "username": "john.doe",
        "enabled": true,
        "emailVerified": false,
        "firstName": "John",
        "lastName": "Doe",
        "email": "john.doe@example.com",
        "createdTimestamp": 1609459200000,
        ...
    }
    """

    id: str | None = None
    username: str | None = None
    enabled: bool | None = None
    email_verified: bool | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    created_timestamp: int | None = None
    attributes: dict[str, list[str]] | None = None
    required_actions: list[str] | None = None
    groups: list[str] | None = None
    # Only present when requested with userProfileMetadata=true
    user_profile_metadata: dict[str, Any] | None = None


class ProtocolMapperRepresentation(KeycloakModel):
    """A protocol mapper attached to a client or client scope.

    Example JSON:
    {
        "name": "email",
        "protocol": "openid-connect",
        "protocolMapper": "oidc-usermodel-attribute-mapper",
        "consentRequired": false,
        "config": {"user.attribute": "email", "claim.name": "email"}
    }
    """

    id: str | None = None
    name: str | None = None
    protocol: str | None = None
    protocol_mapper: str | None = None
    consent_required: bool | None = None
    config: dict[str, str] | None = None


class ClientRepresentation(KeycloakModel):
    id: str | None = None
    client_id: str | None = None
    name: str | None = None
    description: str | None = None
    enabled: bool | None = None
    protocol: str | None = None
    public_client: bool | None = None
    service_accounts_enabled: bool | None = None
    redirect_uris: list[str] | None = None
    web_origins: list[str] | None = None
    attributes: dict[str, str] | None = None
    protocol_mappers: list[ProtocolMapperRepresentation] | None = None


class ClientScopeRepresentation(KeycloakModel):
    """Represents a client scope.

    Attributes are string-valued, e.g. ``{"include.in.token.scope": "true"}``.
    """

    id: str | None = None
    name: str | None = None
    description: str | None = None
    protocol: str | None = None
    attributes: dict[str, str] | None = None
    protocol_mappers: list[ProtocolMapperRepresentation] | None = None


class UPAttribute(KeycloakModel):
    """One attribute of the declarative user profile."""

    name: str
    display_name: str | None = None
    validations: dict[str, Any] | None = None
    validators: dict[str, Any] | None = None
    annotations: dict[str, Any] | None = None
    required: Any = None
    permissions: dict[str, list[str]] | None = None
    selector: dict[str, Any] | None = None
    group: str | None = None
    multivalued: bool | None = None
    read_only: bool | None = None


class UPGroup(KeycloakModel):
    name: str
    display_header: str | None = None
    display_description: str | None = None
    annotations: dict[str, Any] | None = None


class UPConfig(KeycloakModel):
    """User profile configuration of a realm (``GET/PUT users/profile``)."""

    attributes: list[UPAttribute] | None = None
    groups: list[UPGroup] | None = None
    unmanaged_attribute_policy: str | None = None
