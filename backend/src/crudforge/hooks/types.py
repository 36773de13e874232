"""Hook system types for crudforge.

Defines the core data structures for the resource lifecycle hook chains:
- HookName: the lifecycle points a hook can be registered on
- HookContext: fixed runtime state passed to every hook in a chain
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from crudforge.core.types import Actor, TypeID


class HookName(str, Enum):
    """Lifecycle points of a resource."""

    PRE_CREATE = "preCreate"
    PRE_UPDATE = "preUpdate"
    PRE_REPLACE = "preReplace"
    PRE_DELETE = "preDelete"
    PRE_LIST = "preList"
    POST_VIEW = "postView"
    POST_CREATE = "postCreate"
    POST_REPLACE = "postReplace"
    POST_UPDATE = "postUpdate"
    POST_DELETE = "postDelete"
    POST_LIST = "postList"


@dataclass
class HookContext:
    """Runtime context passed to every hook function.

    Attributes:
        resource_name: Name of the resource being operated on
        action: The current action (get, create, update, replace, delete, list)
        actor: The authenticated actor, if any
        raw: The request payload as received, before validation
        id: The target record id (update, replace, delete)
    """

    resource_name: str
    action: str
    actor: Actor | None = None
    raw: Any = None
    id: TypeID | None = None


# Hook function signature: async (data, HookContext) -> data
HookFn = Callable[[Any, HookContext], Awaitable[Any]]
