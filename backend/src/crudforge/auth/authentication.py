"""Authentication method registry.

Endpoints name the methods they accept; ``try_authenticate`` runs them in
order and returns the first Actor produced:

    auth = Authentications()
    auth.register_auth_method("jwt", jwt_bearer(JWTService(secret)))
    auth.register_auth_method("key", api_key("X-API-Key", {"k1": actor}))
    actor = await auth.try_authenticate(["jwt", "key"], headers=headers)
"""

import hmac
import logging
from collections.abc import Mapping
from typing import Any

from crudforge.auth.jwt_service import JWTError, JWTService
from crudforge.auth.permissions import expand_roles
from crudforge.auth.types import AuthMethod
from crudforge.core.errors import ConfigurationError, Unauthorized
from crudforge.core.types import Actor

logger = logging.getLogger(__name__)


def _lookup(values: Mapping[str, str] | None, name: str) -> str | None:
    """Case-insensitive lookup, as HTTP header names are."""
    if not values:
        return None
    lowered = name.lower()
    for key, value in values.items():
        if key.lower() == lowered:
            return value
    return None


class Authentications:
    """Registry of named authentication methods."""

    def __init__(self) -> None:
        self.providers: dict[str, AuthMethod] = {}

    def register_auth_method(self, name: str, method: AuthMethod) -> None:
        """Register a method under a unique name.

        Raises:
            ValueError: If the name is already registered
        """
        if name in self.providers:
            raise ValueError(f"Auth Method {name} already registered")
        self.providers[name] = method

    def get(self, name: str) -> AuthMethod:
        if name not in self.providers:
            raise ConfigurationError(f"Authentication Method {name} not registered")
        return self.providers[name]

    async def try_authenticate(
        self,
        methods: list[str],
        headers: dict[str, str] | None = None,
        query: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        body: Any = None,
        request: Any = None,
    ) -> Actor:
        """Return the actor from the first method that recognizes the request.

        Raises:
            ConfigurationError: If a method name is not registered
            Unauthorized: If every method declines
        """
        for name in methods:
            method = self.get(name)
            if not callable(method.func):
                raise ConfigurationError(
                    f"Authentication Method {name} does not have a valid function"
                )

            logger.debug("Trying to authenticate with method: %s", name)
            actor = await method.func(headers, query, params, body, request)
            if actor is not None:
                logger.debug("Authentication successful for method %s", name)
                return actor

            logger.debug("Authentication failed for method %s", name)

        logger.debug("All authentication methods failed")
        raise Unauthorized()


def jwt_bearer(
    jwt_service: JWTService,
    role_permissions: dict[str, list[str]] | None = None,
) -> AuthMethod:
    """Bearer token method backed by JWTService.

    The actor's permissions are the token's ``permissions`` claim plus the
    permissions its ``roles`` expand to.
    """
    role_permissions = role_permissions or {}

    async def authenticate(headers, query, params, body, request) -> Actor | None:
        header = _lookup(headers, "Authorization")
        if not header or not header.startswith("Bearer "):
            return None

        try:
            claims = jwt_service.decode_token(header[7:])
        except JWTError as e:
            logger.debug("Rejected bearer token: %s", e)
            return None

        if claims.type != "access":
            return None

        permissions = set(claims.permissions)
        permissions.update(expand_roles(claims.roles, role_permissions))
        return Actor(
            permissions=frozenset(permissions),
            id=claims.sub,
            claims={"roles": claims.roles},
        )

    return AuthMethod(authenticate, type="http", scheme="bearer", description="JWT bearer token")


def api_key(
    name: str,
    keys: Mapping[str, Actor],
    location: str = "header",
) -> AuthMethod:
    """Static API key method.

    Args:
        name: Header or query parameter carrying the key
        keys: Accepted keys and the actor each one authenticates as
        location: "header" or "query"
    """
    if location not in ("header", "query"):
        raise ValueError(f"Unsupported api key location: {location}")

    async def authenticate(headers, query, params, body, request) -> Actor | None:
        supplied = _lookup(headers if location == "header" else query, name)
        if not supplied:
            return None
        for key, actor in keys.items():
            if hmac.compare_digest(key, supplied):
                return actor
        return None

    return AuthMethod(authenticate, type="apiKey", scheme=None, location=location, name=name)
