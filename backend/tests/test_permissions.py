"""Tests for the flat permission model.

Covers:
- mayi() against single and multiple permissions
- action_permission() naming
- expand_roles() used by token-based authentication
"""

from crudforge.auth.permissions import action_permission, expand_roles, mayi
from crudforge.core.types import Actor


# ── mayi ─────────────────────────────────────────────────────────────────────


def test_no_actor_is_never_allowed():
    assert not mayi(None, "view.products")


def test_actor_without_permissions():
    assert not mayi(Actor(), "view.products")


def test_single_permission_granted():
    assert mayi(Actor(frozenset({"view.products"})), "view.products")


def test_permission_check_is_case_insensitive():
    actor = Actor(frozenset({"View.Products"}))
    assert mayi(actor, "VIEW.products")
    assert "view.products" in actor.permissions


def test_any_of_several_permissions():
    actor = Actor(frozenset({"shop.manager"}))
    assert mayi(actor, ["shop.owner", "shop.manager"])
    assert not mayi(actor, ["shop.owner", "shop.clerk"])


def test_empty_permission_request_denied():
    assert not mayi(Actor(frozenset({"view.products"})), "")
    assert not mayi(Actor(frozenset({"view.products"})), None)


# ── action_permission ────────────────────────────────────────────────────────


def test_action_permission_format():
    assert action_permission("delete", "products") == "delete.products"


# ── expand_roles ─────────────────────────────────────────────────────────────


def test_expand_roles_unions_permissions():
    roles = {"clerk": ["view.products"], "manager": ["view.products", "delete.products"]}
    assert expand_roles(["clerk", "manager"], roles) == {"view.products", "delete.products"}


def test_unknown_roles_grant_nothing():
    assert expand_roles(["ghost"], {"clerk": ["view.products"]}) == set()
