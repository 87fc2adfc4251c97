"""Client operations: ``{base_url}/admin/realms/{realm}/clients``."""

from typing import Any

from kcadmin.executor import RequestDescriptor, path_segment
from kcadmin.models import ClientRepresentation
from kcadmin.resources.base import Resource, parse_list, to_body


class ClientsResource(Resource):
    """OAuth2/OIDC clients of the configured realm.

    Note that ``id`` is Keycloak's internal UUID while ``client_id`` is the
    public identifier; every method taking ``id`` expects the UUID.
    """

    async def find(
        self,
        client_id: str | None = None,
        search: bool | None = None,
        first: int | None = None,
        max_results: int | None = None,
    ) -> list[ClientRepresentation]:
        query = {"clientId": client_id, "search": search, "first": first, "max": max_results}
        data = await self._executor.execute(RequestDescriptor("GET", "clients", query=query))
        return parse_list(ClientRepresentation, data)

    async def get(self, id: str) -> ClientRepresentation:
        data = await self._executor.execute(RequestDescriptor("GET", f"clients/{path_segment(id)}"))
        return ClientRepresentation.model_validate(data)

    async def create(self, client: ClientRepresentation | dict[str, Any]) -> str | None:
        return await self._executor.execute_create(RequestDescriptor("POST", "clients", body=to_body(client)))

    async def update(self, id: str, client: ClientRepresentation | dict[str, Any]) -> None:
        await self._executor.execute(
            RequestDescriptor("PUT", f"clients/{path_segment(id)}", body=to_body(client))
        )

    async def delete(self, id: str) -> None:
        await self._executor.execute(RequestDescriptor("DELETE", f"clients/{path_segment(id)}"))
