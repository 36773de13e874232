"""Resource orchestration and route descriptors."""

from crudforge.resource.resource import IdParams, Resource
from crudforge.resource.router import (
    ResourceEndpoint,
    RouteDef,
    Router,
    RouterProvider,
    standard_router_provider,
)

__all__ = [
    "IdParams",
    "Resource",
    "ResourceEndpoint",
    "RouteDef",
    "Router",
    "RouterProvider",
    "standard_router_provider",
]
