"""Shared helpers for resource modules."""

from typing import Any, TypeVar

from pydantic import BaseModel

from kcadmin.executor import RequestExecutor
from kcadmin.models import KeycloakModel

ModelT = TypeVar("ModelT", bound=BaseModel)


def to_body(representation: KeycloakModel | dict[str, Any]) -> dict[str, Any]:
    """Accept either a model or a plain camelCase dict as a request body."""
    if isinstance(representation, KeycloakModel):
        return representation.to_payload()
    return dict(representation)


def parse_list(model: type[ModelT], data: Any) -> list[ModelT]:
    return [model.model_validate(item) for item in data or []]


class Resource:
    """Base class: holds the executor shared by all resources of a client."""

    def __init__(self, executor: RequestExecutor):
        self._executor = executor
