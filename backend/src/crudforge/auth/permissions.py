"""Permission checks against an actor's flat permission set."""

from __future__ import annotations

from collections.abc import Iterable

from crudforge.core.types import Actor


def mayi(actor: Actor | None, permission: str | Iterable[str] | None) -> bool:
    """Check whether the actor holds a permission.

    Args:
        actor: The actor to check (None is never allowed)
        permission: A permission name, or several where any one suffices

    Returns:
        True if the actor holds the permission (case-insensitive)
    """
    if actor is None or not actor.permissions or not permission:
        return False

    if isinstance(permission, str):
        return permission.lower() in actor.permissions

    return any(p.lower() in actor.permissions for p in permission)


def action_permission(action: str, permission_name: str) -> str:
    """Build the coarse permission string for a resource action."""
    return f"{action}.{permission_name}"


def expand_roles(
    roles: Iterable[str], role_permissions: dict[str, list[str]]
) -> set[str]:
    """Flatten role names into the permissions they grant.

    Roles are a convenience for token issuers only; the actor itself carries
    no hierarchy, just the resulting permission strings.
    """
    permissions: set[str] = set()
    for role in roles:
        permissions.update(role_permissions.get(role, []))
    return permissions
