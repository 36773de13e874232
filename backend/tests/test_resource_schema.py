"""Tests for ResourceSchema validation: structure first, then field flags."""

import pytest
from pydantic import BaseModel

from crudforge.core.errors import ConfigurationError, UnknownActionError, ValidationFailed
from crudforge.schema import ResourceSchema

from sample_app import CLERK, MANAGER, READER, Category, Product


@pytest.fixture
def schema():
    return ResourceSchema("products", Product)


STORED = {
    "id": 1,
    "name": "Desk",
    "price": 120.0,
    "cost": 80.0,
    "status": "ACTIVE",
    "sku": "dsk-1",
    "dimensions": {"width": 1.2, "height": 0.7, "weight": 30.0},
    "password": "leaked",
    "internal": "row-version-7",
}


class TestConstruction:
    def test_requires_id_field(self):
        class NoId(BaseModel):
            name: str

        with pytest.raises(ConfigurationError, match="Missing 'id' field"):
            ResourceSchema("things", NoId)

    def test_rejects_non_model(self):
        with pytest.raises(ConfigurationError):
            ResourceSchema("things", None)

    def test_derived_schemas_available(self, schema):
        assert schema.pick_schema("create") is schema.create_schema
        assert schema.pick_schema("replace") is schema.replace_schema
        assert schema.pick_schema("update") is schema.update_schema
        assert schema.pick_schema("view") is schema.view_schema

    def test_pick_unknown_action(self, schema):
        with pytest.raises(UnknownActionError):
            schema.pick_schema("get")


class TestParseId:
    def test_coerces_to_id_type(self, schema):
        assert schema.parse_id("42") == 42

    def test_falls_back_to_raw_value(self, schema):
        assert schema.parse_id("abc") == "abc"

    def test_string_ids_unchanged(self):
        assert ResourceSchema("categories", Category).parse_id("7") == "7"


# =============================================================================
# View
# =============================================================================


class TestView:
    @pytest.mark.asyncio
    async def test_hidden_virtual_and_unknown_fields_omitted(self, schema):
        view = await schema.validate("view", STORED, READER)
        assert "cost" not in view
        assert "password" not in view
        assert "internal" not in view

    @pytest.mark.asyncio
    async def test_transform_applied(self, schema):
        view = await schema.validate("view", STORED, READER)
        assert view["sku"] == "DSK-1"

    @pytest.mark.asyncio
    async def test_nested_permission_masks_silently(self, schema):
        reader_view = await schema.validate("view", STORED, READER)
        manager_view = await schema.validate("view", STORED, MANAGER)
        assert reader_view["dimensions"] == {"width": 1.2, "height": 0.7}
        assert manager_view["dimensions"]["weight"] == 30.0

    @pytest.mark.asyncio
    async def test_broken_values_dropped_instead_of_failing(self, schema):
        view = await schema.validate("view", {**STORED, "price": "n/a"}, READER)
        assert "price" not in view
        assert view["name"] == "Desk"

    @pytest.mark.asyncio
    async def test_view_is_idempotent(self, schema):
        once = await schema.validate("view", STORED, MANAGER)
        twice = await schema.validate("view", once, MANAGER)
        assert twice["name"] == once["name"]
        assert set(twice) == set(once)


# =============================================================================
# Create / replace / update
# =============================================================================


class TestCreate:
    @pytest.mark.asyncio
    async def test_valid_payload(self, schema):
        data = await schema.validate("create", {"name": "Desk", "price": 10}, CLERK)
        assert data == {"name": "Desk", "price": 10.0}

    @pytest.mark.asyncio
    async def test_virtual_field_accepted_but_not_persisted(self, schema):
        data = await schema.validate(
            "create", {"name": "Desk", "price": 10, "password": "s3cret"}, CLERK
        )
        assert "password" not in data

    @pytest.mark.asyncio
    async def test_missing_required_fields(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("create", {"price": 10}, CLERK)
        assert exc.value.status_code == 400
        assert exc.value.errors["name"]["code"] == "required"
        assert exc.value.body["message"] == "Invalid input"

    @pytest.mark.asyncio
    async def test_null_required_field_is_required_error(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("create", {"name": None, "price": 10}, CLERK)
        assert exc.value.errors["name"]["code"] == "required"

    @pytest.mark.asyncio
    async def test_missing_body(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("create", None, CLERK)
        assert exc.value.errors == {
            "body": {"message": "Request body is required.", "code": "required"}
        }

    @pytest.mark.asyncio
    async def test_non_object_body(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("update", ["Desk"], CLERK)
        assert list(exc.value.errors) == ["body"]
        assert exc.value.errors["body"]["code"] == "model_type"

    @pytest.mark.asyncio
    async def test_non_creatable_field_rejected(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("create", {"id": 9, "name": "Desk", "price": 10}, CLERK)
        assert exc.value.status_code == 400
        assert exc.value.errors["id"]["code"] == "permission_denied"

    @pytest.mark.asyncio
    async def test_wrong_type_reports_pydantic_code(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("create", {"name": "Desk", "price": "cheap"}, CLERK)
        assert exc.value.errors["price"]["code"] == "float_parsing"

    @pytest.mark.asyncio
    async def test_replace_uses_create_rules(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("replace", {"name": "Desk"}, CLERK)
        assert "price" in exc.value.errors


class TestUpdate:
    @pytest.mark.asyncio
    async def test_partial_payload(self, schema):
        assert await schema.validate("update", {"name": "Desk"}, CLERK) == {"name": "Desk"}

    @pytest.mark.asyncio
    async def test_permission_flag_rejects_only_that_field(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("update", {"name": "Desk", "price": 99}, CLERK)
        assert exc.value.status_code == 403
        assert list(exc.value.errors) == ["price"]
        assert exc.value.errors["price"]["code"] == "permission_denied"

    @pytest.mark.asyncio
    async def test_permission_flag_granted(self, schema):
        data = await schema.validate("update", {"price": 99}, MANAGER)
        assert data == {"price": 99.0}

    @pytest.mark.asyncio
    async def test_anonymous_actor_denied(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("update", {"price": 99}, None)
        assert exc.value.status_code == 403

    @pytest.mark.asyncio
    async def test_id_not_updatable(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("update", {"id": 2}, MANAGER)
        assert exc.value.errors["id"]["code"] == "permission_denied"

    @pytest.mark.asyncio
    async def test_non_object_payload(self, schema):
        with pytest.raises(ValidationFailed) as exc:
            await schema.validate("update", ["name"], CLERK)
        assert exc.value.status_code == 400


class TestUnknownAction:
    @pytest.mark.asyncio
    async def test_validate_unknown_action(self, schema):
        with pytest.raises(UnknownActionError):
            await schema.validate("archive", {}, CLERK)
