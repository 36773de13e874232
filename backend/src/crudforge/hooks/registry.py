"""Hook registry for crudforge.

Each resource owns one registry; chains are appended to at setup time and
only read while serving requests.
"""

from collections.abc import Iterable

from crudforge.hooks.types import HookFn, HookName


class HookRegistry:
    """Ordered hook chains keyed by lifecycle point.

    Example:
        registry = HookRegistry()
        registry.register_hook("preCreate", add_slug)
        registry.register_hook(HookName.POST_LIST, [count_rows, tag_rows])
    """

    def __init__(self) -> None:
        self._hooks: dict[HookName, list[HookFn]] = {name: [] for name in HookName}

    def register_hook(self, name: HookName | str, hooks: HookFn | Iterable[HookFn]) -> None:
        """Append one hook, or a list of hooks, to a chain.

        Lists are flattened one level only.

        Args:
            name: The lifecycle point
            hooks: A hook function or a list of them

        Raises:
            ValueError: If the lifecycle point does not exist
        """
        try:
            name = HookName(name)
        except ValueError:
            raise ValueError(
                f"Unknown hook '{name}'. "
                f"Valid hooks: {', '.join(n.value for n in HookName)}"
            ) from None

        if callable(hooks):
            self._hooks[name].append(hooks)
        else:
            self._hooks[name].extend(hooks)

    def get(self, name: HookName | str) -> list[HookFn]:
        """Get the chain registered for a lifecycle point (in order)."""
        return list(self._hooks[HookName(name)])

    def hook_count(self, name: HookName | str) -> int:
        return len(self._hooks[HookName(name)])

    def clear(self) -> None:
        """Clear all chains. Primarily for testing."""
        for chain in self._hooks.values():
            chain.clear()
