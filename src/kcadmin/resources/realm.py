"""Realm configuration: ``{base_url}/admin/realms/{realm}``."""

from typing import Any

from kcadmin.executor import RequestDescriptor
from kcadmin.models import RealmRepresentation
from kcadmin.resources.base import Resource, to_body


class RealmResource(Resource):
    async def get(self) -> RealmRepresentation:
        data = await self._executor.execute(RequestDescriptor("GET"))
        return RealmRepresentation.model_validate(data)

    async def update(self, realm: RealmRepresentation | dict[str, Any]) -> None:
        """Partially update the realm; fields left out keep their value."""
        await self._executor.execute(RequestDescriptor("PUT", body=to_body(realm)))
