"""Resource orchestrator.

A Resource binds one repository provider to its schema, hooks, cache and
routes, and implements the six CRUD actions as linear pipelines:

    get      view perm -> cache/repository -> view transform
    create   create perm -> validate -> preCreate -> invalidate lists
             -> repository -> postCreate -> view transform (201)
    update   update perm -> validate (partial) -> preUpdate -> invalidate
             -> repository -> postUpdate -> view transform
    replace  replace perm -> validate -> preReplace -> invalidate
             -> repository -> postReplace -> view transform
    delete   delete perm -> preDelete -> invalidate -> repository
             -> postDelete -> {id}
    list     view perm -> parse query -> preList -> cache/repository
             -> postList -> view transform every row -> format response

Actions are enabled from the methods the provider implements.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field

from crudforge.auth.permissions import action_permission, mayi
from crudforge.cache.manager import CacheManager
from crudforge.core.errors import (
    ActionNotConfiguredError,
    ConfigurationError,
    NotFound,
    PermissionDenied,
)
from crudforge.core.types import (
    Actor,
    HttpResponse,
    QueryListParam,
    QueryListResults,
    Record,
    ResourceAction,
    ResourceRequest,
    TypeID,
)
from crudforge.hooks import HookContext, HookFn, HookName, HookRegistry, HookService
from crudforge.list.default_adaptor import DefaultAdaptor, QueryListAdaptor
from crudforge.persistence.adapter import DataRepository
from crudforge.resource.router import ResourceEndpoint, Router, RouterProvider
from crudforge.schema.resource_schema import ResourceSchema

logger = logging.getLogger(__name__)


class IdParams(BaseModel):
    """Path parameters of item routes."""

    id: str = Field(min_length=1)


class Resource:
    """One CRUD resource.

    Args:
        provider: Repository provider with ``name``, ``schema`` and any of
            get/create/update/replace/delete/list
        resource_name: Public name, defaults to ``provider.name``
        permission_name: Permission namespace, defaults to the resource name

    Raises:
        ConfigurationError: If no resource name can be resolved, or the
            provider's schema has no ``id`` field
    """

    def __init__(
        self,
        provider: Any,
        resource_name: str | None = None,
        permission_name: str | None = None,
    ):
        self._resource_name = resource_name or getattr(provider, "name", None)
        if not self._resource_name:
            raise ConfigurationError(
                "Resource name is required. Please provide a valid resource name."
            )

        self.repository = DataRepository(provider)
        self.enabled: set[ResourceAction] = {
            action for action in ResourceAction if self.repository.has(action.value)
        }

        self.schema = ResourceSchema(self._resource_name, getattr(provider, "schema", None))
        self.hooks = HookService(HookRegistry())
        self.cache = CacheManager()
        self.list_adaptor: QueryListAdaptor = DefaultAdaptor()
        self.routes = Router(self._resource_name)
        self._permission_name = permission_name or self._resource_name

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def resource_name(self) -> str:
        return self._resource_name

    @property
    def permission_name(self) -> str:
        return self._permission_name

    @permission_name.setter
    def permission_name(self, name: str) -> None:
        self._permission_name = name

    @property
    def tags(self) -> list[str]:
        return list(self.routes.tags)

    @property
    def authentication(self) -> list[str]:
        return list(self.routes.default_authentication)

    @property
    def original_schema(self) -> type[BaseModel]:
        return self.schema.model

    @property
    def create_schema(self) -> type[BaseModel]:
        return self.schema.create_schema

    @property
    def replace_schema(self) -> type[BaseModel]:
        return self.schema.replace_schema

    @property
    def update_schema(self) -> type[BaseModel]:
        return self.schema.update_schema

    @property
    def view_schema(self) -> type[BaseModel]:
        return self.schema.view_schema

    def set_permission_name(self, name: str) -> Resource:
        self._permission_name = name
        return self

    def set_tags(self, tags: list[str]) -> Resource:
        self.routes.tags = list(tags)
        return self

    def set_authentication(self, methods: list[str]) -> Resource:
        self.routes.default_authentication = list(methods)
        return self

    def set_list_adaptor(self, adaptor: QueryListAdaptor) -> Resource:
        self.list_adaptor = adaptor
        return self

    def set_cache(self, cache: CacheManager) -> Resource:
        self.cache = cache
        return self

    def set_router_provider(self, provider: RouterProvider) -> Resource:
        self.routes.router_provider = provider
        return self

    def disable(self, action: ResourceAction | str | Iterable[ResourceAction | str]) -> Resource:
        """Disable one or more actions regardless of what the provider implements."""
        actions = [action] if isinstance(action, str) else list(action)
        for name in actions:
            self.enabled.discard(ResourceAction(name))
        return self

    def add_hook(self, name: HookName | str, hook: HookFn | list[HookFn]) -> Resource:
        self.hooks.registry.register_hook(name, hook)
        return self

    def add_route(self, endpoint: ResourceEndpoint) -> Resource:
        self.routes.add_route(endpoint)
        return self

    def is_enabled(self, action: ResourceAction | str) -> bool:
        return ResourceAction(action) in self.enabled

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def generate_endpoints(self) -> list[ResourceEndpoint]:
        """Describe one route per enabled action, followed by custom routes."""
        view = self.schema.view_schema
        candidates: list[ResourceEndpoint | None] = []

        if ResourceAction.GET in self.enabled:
            candidates.append(
                self.routes.make_route(
                    "get", self.get, params_schema=IdParams, response_schema=view
                )
            )
        if ResourceAction.UPDATE in self.enabled:
            candidates.append(
                self.routes.make_route(
                    "update",
                    self.update,
                    params_schema=IdParams,
                    body_schema=self.schema.update_schema,
                    response_schema=view,
                )
            )
        if ResourceAction.REPLACE in self.enabled:
            candidates.append(
                self.routes.make_route(
                    "replace",
                    self.replace,
                    params_schema=IdParams,
                    body_schema=self.schema.replace_schema,
                    response_schema=view,
                )
            )
        if ResourceAction.CREATE in self.enabled:
            candidates.append(
                self.routes.make_route(
                    "create",
                    self.create,
                    status_code=201,
                    body_schema=self.schema.create_schema,
                    response_schema=view,
                )
            )
        if ResourceAction.DELETE in self.enabled:
            candidates.append(
                self.routes.make_route(
                    "delete", self.delete, params_schema=IdParams, response_schema=IdParams
                )
            )
        if ResourceAction.LIST in self.enabled and self.list_adaptor is not None:
            candidates.append(
                self.routes.make_route(
                    "list",
                    self.list,
                    query_schema=getattr(self.list_adaptor, "query_schema", None),
                    response_schema=list[view],
                )
            )

        endpoints = [e for e in candidates if e is not None]
        return endpoints + list(self.routes.custom_routes)

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def check_permission(self, actor: Actor | None, action: str) -> None:
        """Require ``{action}.{permission_name}``.

        Raises:
            PermissionDenied: If the actor is missing or lacks the permission
        """
        if not mayi(actor, action_permission(action, self._permission_name)):
            logger.debug(
                "Permission denied %s.%s for actor %s",
                action,
                self._permission_name,
                actor.id if actor else None,
            )
            raise PermissionDenied(action, self._permission_name)

    def _require(self, action: ResourceAction) -> None:
        if action not in self.enabled:
            raise ActionNotConfiguredError(self._resource_name, action.value)

    def _require_id(self, request: ResourceRequest, action: str) -> TypeID:
        raw = (request.params or {}).get("id")
        if raw is None or raw == "":
            raise NotFound(f"Resource {self._resource_name} {action} requires id")
        return self.schema.parse_id(raw)

    def _context(
        self,
        action: str,
        actor: Actor | None,
        raw: Any,
        id: TypeID | None = None,
    ) -> HookContext:
        return HookContext(self._resource_name, action, actor, raw, id)

    async def view_as(self, data: Record | None, actor: Actor | None) -> Record | None:
        """Project a stored record into what the actor may see.

        An actor without the base view permission gets an empty record.
        """
        if not data:
            return data

        if not mayi(actor, action_permission("view", self._permission_name)):
            return {}

        output = await self.schema.validate("view", data, actor)
        return await self.hooks.execute_hooks(
            HookName.POST_VIEW, output, self._context("get", actor, data)
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def get(self, request: ResourceRequest) -> HttpResponse:
        self._require(ResourceAction.GET)
        self.check_permission(request.actor, "view")
        id = self._require_id(request, "get")

        data = await self.cache.get(
            self._resource_name, id, lambda: self.repository.get(id)
        )
        if not data:
            raise NotFound(f"Resource {self._resource_name} with id {id} not found")

        return HttpResponse(await self.view_as(data, request.actor))

    async def create(self, request: ResourceRequest) -> HttpResponse:
        self._require(ResourceAction.CREATE)
        actor = request.actor
        self.check_permission(actor, "create")

        data = await self.schema.validate("create", request.body, actor)
        data = await self.hooks.execute_hooks(
            HookName.PRE_CREATE, data, self._context("create", actor, request.body)
        )

        await self.cache.invalidate(self._resource_name, None)
        result = await self.repository.create(data)

        result = await self.hooks.execute_hooks(
            HookName.POST_CREATE,
            result,
            self._context("create", actor, data, (result or {}).get("id")),
        )

        return HttpResponse(await self.view_as(result, actor), 201)

    async def update(self, request: ResourceRequest) -> HttpResponse:
        self._require(ResourceAction.UPDATE)
        actor = request.actor
        self.check_permission(actor, "update")
        id = self._require_id(request, "update")

        patch = await self.schema.validate("update", request.body, actor)
        raw = {**request.body, "id": request.body.get("id") or id}
        patch = await self.hooks.execute_hooks(
            HookName.PRE_UPDATE, patch, self._context("update", actor, raw, id)
        )

        await self.cache.invalidate(self._resource_name, id)
        result = await self.repository.update(id, patch)
        if result is None:
            raise NotFound(f"Resource {self._resource_name} with id {id} not found")

        result = await self.hooks.execute_hooks(
            HookName.POST_UPDATE, result, self._context("update", actor, raw, id)
        )

        return HttpResponse(await self.view_as(result, actor))

    async def replace(self, request: ResourceRequest) -> HttpResponse:
        self._require(ResourceAction.REPLACE)
        actor = request.actor
        self.check_permission(actor, "replace")
        id = self._require_id(request, "replace")

        data = await self.schema.validate("replace", request.body, actor)
        data = await self.hooks.execute_hooks(
            HookName.PRE_REPLACE, data, self._context("replace", actor, request.body, id)
        )

        await self.cache.invalidate(self._resource_name, id)
        result = await self.repository.replace(id, data)
        if result is None:
            raise NotFound(f"Resource {self._resource_name} with id {id} not found")

        result = await self.hooks.execute_hooks(
            HookName.POST_REPLACE, result, self._context("replace", actor, data, id)
        )

        return HttpResponse(await self.view_as(result, actor))

    async def delete(self, request: ResourceRequest) -> HttpResponse:
        self._require(ResourceAction.DELETE)
        actor = request.actor
        self.check_permission(actor, "delete")
        id = self._require_id(request, "delete")

        await self.hooks.execute_hooks(
            HookName.PRE_DELETE, {"id": id}, self._context("delete", actor, {"id": id}, id)
        )

        await self.cache.invalidate(self._resource_name, id)
        affected = await self.repository.delete(id)
        if not affected:
            raise NotFound(f"Resource {self._resource_name} with id {id} not found")

        await self.hooks.execute_hooks(
            HookName.POST_DELETE, {"id": id}, self._context("delete", actor, {"id": id}, id)
        )

        return HttpResponse({"id": id})

    async def _list(self, params: QueryListParam) -> QueryListResults:
        results = await self.cache.list(
            self._resource_name, params, lambda: self.repository.list(params)
        )
        return results or {"data": [], "total": 0}

    async def list(self, request: ResourceRequest) -> HttpResponse:
        self._require(ResourceAction.LIST)
        actor = request.actor
        self.check_permission(actor, "view")

        if self.list_adaptor is None:
            raise ConfigurationError("Resource invalid configuration (no list adaptor)")

        params = self.list_adaptor.parser(
            self._resource_name,
            request.query,
            request.params,
            request.body,
            request.headers,
        )
        params = await self.hooks.execute_hooks(
            HookName.PRE_LIST, params, self._context("list", actor, params)
        )

        results = await self._list(params)
        results = await self.hooks.execute_hooks(
            HookName.POST_LIST, results, self._context("list", actor, results)
        )

        rows = await asyncio.gather(
            *(self.view_as(row, actor) for row in results["data"])
        )
        response = self.list_adaptor.response(
            {"data": list(rows), "total": results["total"]}, params, self._resource_name
        )
        return HttpResponse(response.body, 200, dict(response.headers))

    def __repr__(self) -> str:
        actions = ", ".join(sorted(a.value for a in self.enabled))
        return f"Resource({self._resource_name!r}, actions=[{actions}])"
