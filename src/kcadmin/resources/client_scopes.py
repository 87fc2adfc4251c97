"""Client scope and protocol mapper operations.

Paths: ``client-scopes`` and ``client-scopes/{id}/protocol-mappers/models``.
"""

from typing import Any

from kcadmin.executor import RequestDescriptor, path_segment
from kcadmin.models import ClientScopeRepresentation, ProtocolMapperRepresentation
from kcadmin.resources.base import Resource, parse_list, to_body


def _scope_path(scope_id: str) -> str:
    return f"client-scopes/{path_segment(scope_id)}"


def _mappers_path(scope_id: str) -> str:
    return f"{_scope_path(scope_id)}/protocol-mappers/models"


class ClientScopesResource(Resource):
    async def find_all(self) -> list[ClientScopeRepresentation]:
        data = await self._executor.execute(RequestDescriptor("GET", "client-scopes"))
        return parse_list(ClientScopeRepresentation, data)

    async def find_by_id(self, scope_id: str) -> ClientScopeRepresentation:
        data = await self._executor.execute(RequestDescriptor("GET", _scope_path(scope_id)))
        return ClientScopeRepresentation.model_validate(data)

    async def create(self, scope: ClientScopeRepresentation | dict[str, Any]) -> str | None:
        """Create a client scope and return its id.

        Raises:
            ConflictError: If a client scope with the same name exists
        """
        return await self._executor.execute_create(
            RequestDescriptor("POST", "client-scopes", body=to_body(scope))
        )

    async def update(self, scope_id: str, scope: ClientScopeRepresentation | dict[str, Any]) -> None:
        await self._executor.execute(RequestDescriptor("PUT", _scope_path(scope_id), body=to_body(scope)))

    async def delete(self, scope_id: str) -> None:
        await self._executor.execute(RequestDescriptor("DELETE", _scope_path(scope_id)))

    # Protocol mappers

    async def get_protocol_mappers(self, scope_id: str) -> list[ProtocolMapperRepresentation]:
        data = await self._executor.execute(RequestDescriptor("GET", _mappers_path(scope_id)))
        return parse_list(ProtocolMapperRepresentation, data)

    async def get_protocol_mapper(self, scope_id: str, mapper_id: str) -> ProtocolMapperRepresentation:
        path = f"{_mappers_path(scope_id)}/{path_segment(mapper_id)}"
        data = await self._executor.execute(RequestDescriptor("GET", path))
        return ProtocolMapperRepresentation.model_validate(data)

    async def create_protocol_mapper(
        self, scope_id: str, mapper: ProtocolMapperRepresentation | dict[str, Any]
    ) -> str | None:
        return await self._executor.execute_create(
            RequestDescriptor("POST", _mappers_path(scope_id), body=to_body(mapper))
        )

    async def update_protocol_mapper(
        self,
        scope_id: str,
        mapper_id: str,
        mapper: ProtocolMapperRepresentation | dict[str, Any],
    ) -> None:
        body = to_body(mapper)
        # Keycloak rejects the update unless the body carries the mapper id
        body.setdefault("id", mapper_id)
        path = f"{_mappers_path(scope_id)}/{path_segment(mapper_id)}"
        await self._executor.execute(RequestDescriptor("PUT", path, body=body))

    async def delete_protocol_mapper(self, scope_id: str, mapper_id: str) -> None:
        path = f"{_mappers_path(scope_id)}/{path_segment(mapper_id)}"
        await self._executor.execute(RequestDescriptor("DELETE", path))
