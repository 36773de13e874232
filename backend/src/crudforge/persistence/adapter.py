"""Repository contract shared by every storage backend.

A repository provider exposes ``name`` and ``schema`` (the canonical pydantic
model) plus any subset of these coroutines:

    get(id) -> Record | None
    create(data) -> Record
    update(id, patch) -> Record | None
    replace(id, data) -> Record | None
    delete(id) -> int                      # rows affected
    list(QueryListParam) -> {"data": [...], "total": n}

A missing method disables the matching resource action.
"""

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from crudforge.core.errors import ActionNotConfiguredError
from crudforge.core.types import QueryListParam, QueryListResults, Record, TypeID

REPOSITORY_METHODS = ("get", "create", "update", "replace", "delete", "list")


@runtime_checkable
class RepositoryProvider(Protocol):
    """Minimal shape of a storage backend. Methods are looked up by name."""

    name: str
    schema: type[BaseModel]


class DataRepository:
    """Dispatches resource calls to a provider, failing fast on missing methods."""

    def __init__(self, provider: Any):
        self.provider = provider

    @property
    def name(self) -> str | None:
        return getattr(self.provider, "name", None)

    @property
    def schema(self) -> type[BaseModel] | None:
        return getattr(self.provider, "schema", None)

    def has(self, method: str) -> bool:
        return method in REPOSITORY_METHODS and callable(getattr(self.provider, method, None))

    def _method(self, method: str) -> Any:
        if not self.has(method):
            raise ActionNotConfiguredError(self.name or "<unnamed>", method)
        return getattr(self.provider, method)

    async def get(self, id: TypeID) -> Record | None:
        return await self._method("get")(id)

    async def create(self, data: Record) -> Record:
        return await self._method("create")(data)

    async def update(self, id: TypeID, patch: Record) -> Record | None:
        return await self._method("update")(id, patch)

    async def replace(self, id: TypeID, data: Record) -> Record | None:
        return await self._method("replace")(id, data)

    async def delete(self, id: TypeID) -> int:
        return await self._method("delete")(id)

    async def list(self, params: QueryListParam) -> QueryListResults:
        return await self._method("list")(params)
