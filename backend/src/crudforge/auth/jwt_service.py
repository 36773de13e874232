"""Signed access tokens carrying an actor's permissions and roles."""

import time
from typing import Any

import jwt

from crudforge.auth.types import TokenClaims


class JWTError(Exception):
    """A bearer token could not be accepted."""


class TokenExpiredError(JWTError):
    pass


class InvalidTokenError(JWTError):
    """Bad signature, malformed token or wrong issuer."""


class JWTService:
    """Issues and verifies access tokens for the ``jwt_bearer`` auth method.

    Args:
        secret_key: Shared signing secret (32+ characters for HS256)
        algorithm: Signing algorithm
        issuer: When set, stamped as ``iss`` and required on decode
        leeway: Seconds of clock skew tolerated on ``exp``
    """

    ACCESS_TOKEN_TTL = 15 * 60

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        issuer: str | None = None,
        leeway: int = 0,
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.issuer = issuer
        self.leeway = leeway

    def generate_access_token(
        self,
        subject: str,
        permissions: list[str] | None = None,
        roles: list[str] | None = None,
        ttl: int | None = None,
    ) -> str:
        """Sign a token for ``subject``. Roles are expanded by the verifier."""
        issued_at = int(time.time())
        lifetime = self.ACCESS_TOKEN_TTL if ttl is None else ttl

        payload: dict[str, Any] = {
            "sub": subject,
            "type": "access",
            "iat": issued_at,
            "exp": issued_at + lifetime,
        }
        if self.issuer:
            payload["iss"] = self.issuer
        if permissions:
            payload["permissions"] = sorted(set(permissions))
        if roles:
            payload["roles"] = list(roles)

        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenClaims:
        """Verify a token and return its claims.

        Raises:
            TokenExpiredError: Past ``exp`` (beyond the leeway)
            InvalidTokenError: Any other verification failure
        """
        options: dict[str, Any] = {"algorithms": [self._algorithm], "leeway": self.leeway}
        if self.issuer:
            options["issuer"] = self.issuer

        try:
            payload = jwt.decode(token, self._secret_key, **options)
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired") from None
        except jwt.PyJWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from None

        return TokenClaims(
            sub=str(payload.get("sub", "")),
            permissions=list(payload.get("permissions", [])),
            roles=list(payload.get("roles", [])),
            exp=payload.get("exp", 0),
            iat=payload.get("iat", 0),
            type=payload.get("type", "access"),
        )
