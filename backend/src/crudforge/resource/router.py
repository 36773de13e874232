"""Endpoint descriptors and route layout for resources."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from crudforge.core.types import HttpResponse, ResourceAction, ResourceRequest

logger = logging.getLogger(__name__)

ResourceHandler = Callable[[ResourceRequest], Awaitable[HttpResponse]]


@dataclass(frozen=True)
class RouteDef:
    path: str
    method: str


RouterProvider = Callable[[str, str], RouteDef | None]


def standard_router_provider(action: str, resource_name: str) -> RouteDef:
    """REST layout: collection at ``/{name}``, items at ``/{name}/{id}``.

    Raises:
        ValueError: For actions outside get/create/update/replace/delete/list
    """
    item = f"/{resource_name}/{{id}}"
    collection = f"/{resource_name}"

    routes = {
        ResourceAction.GET: RouteDef(item, "GET"),
        ResourceAction.CREATE: RouteDef(collection, "POST"),
        ResourceAction.UPDATE: RouteDef(item, "PATCH"),
        ResourceAction.REPLACE: RouteDef(item, "PUT"),
        ResourceAction.DELETE: RouteDef(item, "DELETE"),
        ResourceAction.LIST: RouteDef(collection, "GET"),
    }
    try:
        return routes[ResourceAction(action)]
    except ValueError:
        raise ValueError(f"Unsupported action: {action}") from None


@dataclass
class ResourceEndpoint:
    """Transport-neutral description of one route.

    Attributes:
        path: Route path with ``{id}`` style placeholders
        method: HTTP method
        action: Resource action served, or a free-form name for custom routes
        handler: Coroutine turning a ResourceRequest into an HttpResponse
        tags: Documentation tags
        summary: One-line documentation summary
        authentication: Names of the auth methods tried, in order; empty
            means anonymous access
        status_code: Status of a successful response
        query_schema, params_schema, body_schema, response_schema:
            Pydantic models (or types) documenting the request and response
    """

    path: str
    method: str
    action: str
    handler: ResourceHandler
    tags: list[str] = field(default_factory=list)
    summary: str = ""
    authentication: list[str] = field(default_factory=list)
    status_code: int = 200
    query_schema: Any = None
    params_schema: Any = None
    body_schema: Any = None
    response_schema: Any = None


class Router:
    """Builds endpoint descriptors for one resource.

    Custom routes added with ``add_route`` are kept and returned after the
    standard ones.
    """

    def __init__(self, resource_name: str):
        self.resource_name = resource_name
        self.router_provider: RouterProvider = standard_router_provider
        self.default_authentication: list[str] = []
        self.tags: list[str] = [resource_name]
        self.custom_routes: list[ResourceEndpoint] = []

    def add_route(self, endpoint: ResourceEndpoint) -> None:
        self.custom_routes.append(endpoint)

    def make_route(
        self,
        action: str,
        handler: ResourceHandler,
        status_code: int = 200,
        **schemas: Any,
    ) -> ResourceEndpoint | None:
        """Describe a standard action route, or None if the provider suppresses it."""
        route = self.router_provider(action, self.resource_name)
        if route is None:
            logger.debug(
                "Route %s %s is disabled by router provider", action, self.resource_name
            )
            return None

        return ResourceEndpoint(
            path=route.path,
            method=route.method,
            action=action,
            handler=handler,
            tags=list(self.tags),
            summary=f"[{action}] {self.resource_name}",
            authentication=list(self.default_authentication),
            status_code=status_code,
            **schemas,
        )
