"""crudforge resource lifecycle hook system.

Provides extension points that transform data around each resource action:
- pre hooks (preCreate, preUpdate, preReplace, preDelete, preList) receive
  the validated input before it reaches the repository
- post hooks (postCreate, postUpdate, postReplace, postDelete, postList,
  postView) receive the repository output before it is returned

Usage:
    from crudforge.hooks import HookContext

    async def add_slug(data: dict, ctx: HookContext) -> dict:
        return {**data, "slug": data["name"].lower()}

    resource.add_hook("preCreate", add_slug)
"""

from crudforge.hooks.registry import HookRegistry
from crudforge.hooks.service import HookService
from crudforge.hooks.types import HookContext, HookFn, HookName

__all__ = [
    "HookContext",
    "HookFn",
    "HookName",
    "HookRegistry",
    "HookService",
]
