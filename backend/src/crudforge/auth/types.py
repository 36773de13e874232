"""Type definitions for authentication."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from crudforge.core.types import Actor

# Authentication function signature:
# async (headers, query, params, body, request) -> Actor | None
AuthFunc = Callable[
    [dict[str, str] | None, dict[str, str] | None, dict[str, str] | None, Any, Any],
    Awaitable[Actor | None],
]


@dataclass
class TokenClaims:
    """Claims embedded in a JWT token.

    Attributes:
        sub: The authenticated subject's ID
        permissions: Permissions granted directly
        roles: Role names, expanded into permissions by the auth method
        exp: Token expiration timestamp
        iat: Token issued-at timestamp
        type: Token type
    """

    sub: str
    permissions: list[str] = field(default_factory=list)
    roles: list[str] = field(default_factory=list)
    exp: int = 0
    iat: int = 0
    type: str = "access"


@dataclass
class AuthMethod:
    """A named way of turning a request into an Actor.

    ``type``/``scheme``/``location``/``name`` follow the OpenAPI security
    scheme vocabulary so transport bindings can document the method.

    Attributes:
        func: Coroutine returning an Actor, or None when the request does
            not carry valid credentials for this method
        type: "http" or "apiKey"
        scheme: "bearer" or "basic" for http methods
        location: "header" or "query" for apiKey methods
        name: Header or query parameter name for apiKey methods
        description: Human-readable description
    """

    func: AuthFunc
    type: str = "http"
    scheme: str | None = "bearer"
    location: str | None = None
    name: str | None = None
    description: str = ""

    def openapi(self) -> dict[str, Any]:
        """Security scheme object for OpenAPI documents."""
        scheme: dict[str, Any] = {"type": self.type}
        if self.type == "http":
            scheme["scheme"] = self.scheme
        else:
            scheme["in"] = self.location
            scheme["name"] = self.name
        if self.description:
            scheme["description"] = self.description
        return scheme
