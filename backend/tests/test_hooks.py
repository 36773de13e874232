"""Tests for the resource lifecycle hook system."""

import pytest

from crudforge.hooks import HookContext, HookName, HookRegistry, HookService


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def registry():
    return HookRegistry()


@pytest.fixture
def hook_service(registry):
    return HookService(registry)


@pytest.fixture
def context():
    return HookContext(resource_name="products", action="create", raw={"name": "Desk"})


def appender(tag):
    async def hook(data, context):
        return [*data, tag]

    return hook


# =============================================================================
# Registry
# =============================================================================


class TestHookRegistry:
    def test_register_single_hook(self, registry):
        registry.register_hook("preCreate", appender("a"))
        assert registry.hook_count(HookName.PRE_CREATE) == 1

    def test_register_list_flattens_one_level(self, registry):
        first, second = appender("a"), appender("b")
        registry.register_hook(HookName.POST_LIST, [first, second])
        assert registry.get("postList") == [first, second]

    def test_register_appends_in_order(self, registry):
        first, second = appender("a"), appender("b")
        registry.register_hook("preUpdate", first)
        registry.register_hook("preUpdate", second)
        assert registry.get(HookName.PRE_UPDATE) == [first, second]

    def test_unknown_hook_name(self, registry):
        with pytest.raises(ValueError, match="Unknown hook 'beforeSave'"):
            registry.register_hook("beforeSave", appender("a"))

    def test_get_returns_copy(self, registry):
        registry.register_hook("preCreate", appender("a"))
        registry.get("preCreate").clear()
        assert registry.hook_count("preCreate") == 1

    def test_clear(self, registry):
        registry.register_hook("preCreate", appender("a"))
        registry.register_hook("postView", appender("b"))
        registry.clear()
        assert all(registry.hook_count(name) == 0 for name in HookName)

    def test_registries_are_independent(self):
        one, two = HookRegistry(), HookRegistry()
        one.register_hook("preCreate", appender("a"))
        assert two.hook_count("preCreate") == 0


# =============================================================================
# Execution
# =============================================================================


class TestExecuteHooks:
    @pytest.mark.asyncio
    async def test_empty_chain_returns_input(self, hook_service, context):
        data = {"name": "Desk"}
        assert await hook_service.execute_hooks("preCreate", data, context) is data

    @pytest.mark.asyncio
    async def test_chain_runs_in_registration_order(self, registry, hook_service, context):
        registry.register_hook("preCreate", [appender("a"), appender("b")])
        registry.register_hook("preCreate", appender("c"))
        assert await hook_service.execute_hooks("preCreate", [], context) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_each_hook_sees_same_context(self, registry, hook_service, context):
        seen = []

        async def record(data, ctx):
            seen.append(ctx)
            return data

        registry.register_hook("postCreate", [record, record])
        await hook_service.execute_hooks("postCreate", {}, context)
        assert seen == [context, context]

    @pytest.mark.asyncio
    async def test_failure_aborts_chain(self, registry, hook_service, context):
        calls = []

        async def fail(data, ctx):
            raise RuntimeError("vetoed")

        async def after(data, ctx):
            calls.append("after")
            return data

        registry.register_hook("preDelete", [fail, after])
        with pytest.raises(RuntimeError, match="vetoed"):
            await hook_service.execute_hooks("preDelete", {"id": 1}, context)
        assert calls == []

    @pytest.mark.asyncio
    async def test_chains_are_separate_per_point(self, registry, hook_service, context):
        registry.register_hook("preCreate", appender("a"))
        assert await hook_service.execute_hooks("preUpdate", [], context) == []
