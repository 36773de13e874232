"""FastAPI binding.

Turns resource endpoint descriptors into FastAPI routes. Requests are not
validated by FastAPI: handlers receive the raw query, path params, body and
headers, and every HttpError they raise is rendered with its own status,
body and headers.
"""

import json
import logging
from collections.abc import Iterable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, TypeAdapter

from crudforge.auth.authentication import Authentications
from crudforge.cache.adaptors import CacheNothing, RedisCache
from crudforge.config import Settings, create_cache
from crudforge.core.errors import ConfigurationError, HttpError
from crudforge.core.types import ResourceRequest
from crudforge.resource.resource import Resource
from crudforge.resource.router import ResourceEndpoint

logger = logging.getLogger(__name__)

_BODY_METHODS = ("POST", "PUT", "PATCH")

_ERROR_BODY = {
    "type": "object",
    "properties": {"message": {"type": "string"}},
    "additionalProperties": True,
}
_VALIDATION_ERROR_BODY = {
    "type": "object",
    "properties": {
        "message": {"type": "string"},
        "errors": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "code": {"type": "string"},
                    "message": {"type": "string"},
                },
            },
        },
    },
}


def _inline_refs(schema: Any, defs: dict[str, Any]) -> Any:
    """Replace local ``#/$defs/X`` references with their definitions."""
    if isinstance(schema, list):
        return [_inline_refs(item, defs) for item in schema]
    if not isinstance(schema, dict):
        return schema

    ref = schema.get("$ref")
    if isinstance(ref, str) and ref.startswith("#/$defs/"):
        return _inline_refs(defs[ref.removeprefix("#/$defs/")], defs)

    return {k: _inline_refs(v, defs) for k, v in schema.items() if k != "$defs"}


def to_json_schema(schema: Any) -> dict[str, Any]:
    """Self-contained JSON schema of a model or type, for OpenAPI documents."""
    generated = TypeAdapter(schema).json_schema()
    return _inline_refs(generated, generated.get("$defs", {}))


def _merge_path(prefix: str, path: str) -> str:
    prefix = prefix.rstrip("/")
    if path in ("", "/"):
        return prefix or "/"
    return prefix + (path if path.startswith("/") else "/" + path)


def _openapi_extra(endpoint: ResourceEndpoint) -> dict[str, Any]:
    parameters: list[dict[str, Any]] = []

    if isinstance(endpoint.params_schema, type) and issubclass(endpoint.params_schema, BaseModel):
        for name in endpoint.params_schema.model_fields:
            parameters.append(
                {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}
            )

    if isinstance(endpoint.query_schema, type) and issubclass(endpoint.query_schema, BaseModel):
        for name, info in endpoint.query_schema.model_fields.items():
            parameter: dict[str, Any] = {
                "name": name,
                "in": "query",
                "required": False,
                "schema": {"type": "string"},
            }
            if info.examples:
                parameter["example"] = info.examples[0]
            parameters.append(parameter)

    success = (
        to_json_schema(endpoint.response_schema)
        if endpoint.response_schema is not None
        else {"type": "object", "additionalProperties": True}
    )
    extra: dict[str, Any] = {
        "responses": {
            str(endpoint.status_code): {
                "description": "Successful Response",
                "content": {"application/json": {"schema": success}},
            },
            "400": {
                "description": "Invalid input",
                "content": {"application/json": {"schema": _VALIDATION_ERROR_BODY}},
            },
            "401": {
                "description": "Unauthorized",
                "content": {"application/json": {"schema": _ERROR_BODY}},
            },
            "403": {
                "description": "Permission denied",
                "content": {"application/json": {"schema": _VALIDATION_ERROR_BODY}},
            },
            "404": {
                "description": "Not found",
                "content": {"application/json": {"schema": _ERROR_BODY}},
            },
        },
        "security": [{name: []} for name in endpoint.authentication],
    }
    if parameters:
        extra["parameters"] = parameters
    if endpoint.body_schema is not None:
        extra["requestBody"] = {
            "required": True,
            "content": {"application/json": {"schema": to_json_schema(endpoint.body_schema)}},
        }
    return extra


async def _read_body(request: Request) -> Any:
    if request.method not in _BODY_METHODS:
        return None
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise HttpError("Invalid JSON body", 400, True) from None


def _make_route_handler(
    endpoint: ResourceEndpoint, authentications: Authentications | None
):
    async def route_handler(request: Request) -> JSONResponse:
        query = dict(request.query_params)
        params = dict(request.path_params)
        headers = dict(request.headers)
        body = await _read_body(request)

        actor = None
        if endpoint.authentication:
            actor = await authentications.try_authenticate(
                endpoint.authentication, headers, query, params, body, request
            )

        response = await endpoint.handler(
            ResourceRequest(
                method=request.method,
                path=request.url.path,
                query=query,
                params=params,
                body=body,
                headers=headers,
                actor=actor,
                request=request,
            )
        )
        return JSONResponse(
            content=jsonable_encoder(response.body),
            status_code=response.status_code,
            headers=response.headers,
        )

    return route_handler


async def http_error_handler(request: Request, exc: HttpError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(content=exc.body, status_code=exc.status_code, headers=exc.headers)


def _install_security_schemes(app: FastAPI, authentications: Authentications) -> None:
    generate = app.openapi

    def openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = generate()
        schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        for name, method in authentications.providers.items():
            schemes[name] = method.openapi()
        return schema

    app.openapi = openapi  # type: ignore[method-assign]


def mount_resources(
    app: FastAPI,
    resources: Iterable[Resource],
    authentications: Authentications | None = None,
    prefix: str = "/api",
) -> list[ResourceEndpoint]:
    """Register the endpoints of every resource on the app.

    Returns:
        The endpoint descriptors that were mounted

    Raises:
        ConfigurationError: If an endpoint names an unregistered auth method
    """
    app.add_exception_handler(HttpError, http_error_handler)
    mounted: list[ResourceEndpoint] = []

    for resource in resources:
        for endpoint in resource.generate_endpoints():
            for name in endpoint.authentication:
                if authentications is None or name not in authentications.providers:
                    raise ConfigurationError(
                        f'Authentication method "{name}" is not defined in authentication provider.'
                    )

            path = _merge_path(prefix, endpoint.path)
            logger.debug("Registering route: [%s %s]", endpoint.method, path)
            app.add_api_route(
                path,
                _make_route_handler(endpoint, authentications),
                methods=[endpoint.method],
                tags=endpoint.tags,
                summary=endpoint.summary,
                operation_id=f"{endpoint.action}_{resource.resource_name}",
                status_code=endpoint.status_code,
                openapi_extra=_openapi_extra(endpoint),
                response_class=JSONResponse,
            )
            mounted.append(endpoint)

    if authentications is not None:
        _install_security_schemes(app, authentications)

    return mounted


def create_app(
    resources: Iterable[Resource],
    authentications: Authentications | None = None,
    settings: Settings | None = None,
    title: str = "crudforge API",
    prefix: str = "/api",
) -> FastAPI:
    """Build a FastAPI app serving the given resources.

    Resources still on the default no-op cache get the cache the settings
    describe.
    """
    settings = settings or Settings.from_env()
    resources = list(resources)

    cache = create_cache(settings)
    for resource in resources:
        if isinstance(resource.cache.cache, CacheNothing):
            resource.set_cache(cache)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await cache.flush()
        if isinstance(cache.cache, RedisCache):
            await cache.cache.close()

    app = FastAPI(title=title, lifespan=lifespan)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=[f"X-total-{r.resource_name}" for r in resources],
        )

    mount_resources(app, resources, authentications, prefix)

    @app.get(f"{prefix.rstrip('/')}/health", include_in_schema=False)
    async def health() -> dict[str, Any]:
        return {"status": "ok", "resources": [r.resource_name for r in resources]}

    app.state.resources = resources
    return app
