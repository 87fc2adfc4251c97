"""Typed call sites for Keycloak admin resources.

Each resource is a thin wrapper over ``RequestExecutor``: it builds the
request descriptor, and validates the response into a pydantic model.
Errors from the executor are surfaced unchanged.
"""

from kcadmin.resources.client_scopes import ClientScopesResource
from kcadmin.resources.clients import ClientsResource
from kcadmin.resources.realm import RealmResource
from kcadmin.resources.users import UsersResource

__all__ = [
    "ClientScopesResource",
    "ClientsResource",
    "RealmResource",
    "UsersResource",
]
