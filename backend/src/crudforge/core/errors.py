"""HTTP-shaped error taxonomy for crudforge.

Every failure raised by the schema coordinator, the resource orchestrator
and the authentication registry is an HttpError carrying a status code and
a JSON-ready body, so transport bindings can render it without knowing
where it came from:
- ValidationFailed: 400 (structural) or 403 (field permission)
- PermissionDenied: 403, coarse action-level gate
- NotFound: 404
- Unauthorized: 401
- ConfigurationError: 500, programmer error, never retryable
"""

from __future__ import annotations

from typing import Any

from crudforge.core.types import FieldValidationError


class HttpError(Exception):
    """Base error with a status code, body payload and response headers."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        body: dict[str, Any] | str | bool | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.headers = headers or {}

        if body is True:
            self.body: dict[str, Any] = {"message": message}
        elif isinstance(body, str):
            self.body = {"message": body}
        elif isinstance(body, dict):
            self.body = body
        else:
            self.body = {"message": "Internal server error!"}

    def to_dict(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "message": self.message,
            "body": self.body,
        }


class ValidationFailed(HttpError):
    """Structural or field-permission validation failure.

    Attributes:
        errors: Mapping of dotted field path to {message, code}
    """

    def __init__(
        self,
        errors: dict[str, FieldValidationError],
        status_code: int = 400,
        message: str | None = None,
    ):
        if message is None:
            if len(errors) == 1:
                message = next(iter(errors.values()))["message"]
            else:
                message = "Invalid input"
        super().__init__(
            "Validate failed",
            status_code,
            {"message": message, "errors": errors},
        )
        self.errors = errors

    @classmethod
    def for_field(
        cls, path: str, message: str, code: str, status_code: int = 400
    ) -> "ValidationFailed":
        return cls({path: {"message": message, "code": code}}, status_code)


class PermissionDenied(HttpError):
    def __init__(self, action: str, permission_name: str):
        super().__init__(
            f"Permission denied {action}.{permission_name}",
            403,
            {
                "message": "Permission denied",
                "action": action,
                "permissionName": permission_name,
            },
        )
        self.action = action
        self.permission_name = permission_name


class NotFound(HttpError):
    def __init__(self, message: str):
        super().__init__(message, 404, True)


class Unauthorized(HttpError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, 401, True, {"WWW-Authenticate": "Bearer"})


class ConfigurationError(HttpError):
    """Raised for programmer errors: bad schema, unknown action, missing name."""

    def __init__(self, message: str):
        super().__init__(message, 500, True)


class UnknownActionError(ConfigurationError):
    def __init__(self, action: Any):
        super().__init__(f"Unknown action: {action}")
        self.action = action


class ActionNotConfiguredError(ConfigurationError):
    def __init__(self, resource_name: str, action: str):
        super().__init__(
            f"Resource {resource_name} does not support '{action}' "
            "(action not configured)"
        )
        self.resource_name = resource_name
        self.action = action
