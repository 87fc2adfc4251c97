"""User operations: ``{base_url}/admin/realms/{realm}/users``."""

from typing import Any

from kcadmin.executor import RequestDescriptor, path_segment
from kcadmin.models import UPConfig, UserRepresentation
from kcadmin.resources.base import Resource, parse_list, to_body


class UsersResource(Resource):
    """Users of the configured realm.

    Example:
        >>> user = await client.users.get(user_id, user_profile_metadata=True)
        >>> print(user.username)
    """

    async def find(
        self,
        search: str | None = None,
        username: str | None = None,
        email: str | None = None,
        exact: bool | None = None,
        enabled: bool | None = None,
        first: int | None = None,
        max_results: int | None = None,
        brief_representation: bool | None = None,
    ) -> list[UserRepresentation]:
        """Search users. With no filters, lists users (paged by first/max_results)."""
        query = {
            "search": search,
            "username": username,
            "email": email,
            "exact": exact,
            "enabled": enabled,
            "first": first,
            "max": max_results,
            "briefRepresentation": brief_representation,
        }
        data = await self._executor.execute(RequestDescriptor("GET", "users", query=query))
        return parse_list(UserRepresentation, data)

    async def count(self, search: str | None = None, enabled: bool | None = None) -> int:
        query = {"search": search, "enabled": enabled}
        data = await self._executor.execute(RequestDescriptor("GET", "users/count", query=query))
        return int(data)

    async def get(self, user_id: str, user_profile_metadata: bool | None = None) -> UserRepresentation:
        """Get a user by id (not username).

        Args:
            user_id: The unique ID of the user
            user_profile_metadata: Include the user profile metadata in the response

        Raises:
            NotFoundError: If no user has this id
        """
        descriptor = RequestDescriptor(
            "GET",
            f"users/{path_segment(user_id)}",
            query={"userProfileMetadata": user_profile_metadata},
        )
        data = await self._executor.execute(descriptor)
        return UserRepresentation.model_validate(data)

    async def create(self, user: UserRepresentation | dict[str, Any]) -> str | None:
        """Create a user and return its id.

        Raises:
            ConflictError: If the username or email is already taken
        """
        return await self._executor.execute_create(RequestDescriptor("POST", "users", body=to_body(user)))

    async def update(self, user_id: str, user: UserRepresentation | dict[str, Any]) -> None:
        await self._executor.execute(
            RequestDescriptor("PUT", f"users/{path_segment(user_id)}", body=to_body(user))
        )

    async def delete(self, user_id: str) -> None:
        await self._executor.execute(RequestDescriptor("DELETE", f"users/{path_segment(user_id)}"))

    async def get_user_profile_config(self) -> UPConfig:
        data = await self._executor.execute(RequestDescriptor("GET", "users/profile"))
        return UPConfig.model_validate(data)

    async def set_user_profile_config(self, config: UPConfig | dict[str, Any]) -> UPConfig:
        """Replace the realm's user profile configuration; returns the stored config."""
        data = await self._executor.execute(RequestDescriptor("PUT", "users/profile", body=to_body(config)))
        return UPConfig.model_validate(data)
