"""Hook execution service for crudforge.

Runs the chain registered on a lifecycle point, feeding each hook the
output of the previous one.
"""

import logging
from typing import Any

from crudforge.hooks.registry import HookRegistry
from crudforge.hooks.types import HookContext, HookName

logger = logging.getLogger(__name__)


class HookService:
    """Executes hook chains from one registry.

    Hooks within a chain execute sequentially in registration order.
    A failing hook aborts the chain and its exception propagates unchanged.
    """

    def __init__(self, registry: HookRegistry | None = None):
        self.registry = registry or HookRegistry()

    async def execute_hooks(
        self,
        name: HookName | str,
        data: Any,
        context: HookContext,
    ) -> Any:
        """Execute the chain for a lifecycle point.

        Args:
            name: The lifecycle point
            data: Input of the first hook
            context: Context shared by every hook of the chain

        Returns:
            The last hook's output, or ``data`` if the chain is empty
        """
        chain = self.registry.get(name)
        if not chain:
            return data

        logger.debug(
            "Running %d %s hook(s) for %s", len(chain), HookName(name).value, context.resource_name
        )
        for hook_fn in chain:
            data = await hook_fn(data, context)

        return data
