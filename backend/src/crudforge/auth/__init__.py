"""Authentication and permission checks for crudforge."""

from crudforge.auth.authentication import Authentications, api_key, jwt_bearer
from crudforge.auth.jwt_service import JWTService
from crudforge.auth.permissions import action_permission, expand_roles, mayi
from crudforge.auth.types import AuthMethod, TokenClaims

__all__ = [
    "AuthMethod",
    "Authentications",
    "JWTService",
    "TokenClaims",
    "action_permission",
    "api_key",
    "expand_roles",
    "jwt_bearer",
    "mayi",
]
