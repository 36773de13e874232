"""Tests for derived schema generation."""

import pytest
from pydantic import ValidationError

from crudforge.core.errors import UnknownActionError
from crudforge.schema import ABSENT, copy_fields, copy_schema, model_to_dict

from sample_app import Category, Product


class TestCreateSchema:
    def test_drops_fields_not_creatable(self):
        schema = copy_fields("create", Product)
        assert "id" not in schema.model_fields
        assert "name" in schema.model_fields

    def test_keeps_virtual_fields(self):
        assert "password" in copy_fields("create", Product).model_fields

    def test_rejects_extra_keys(self):
        schema = copy_fields("create", Product)
        with pytest.raises(ValidationError) as exc:
            schema.model_validate({"name": "x", "price": 1, "id": 4})
        assert exc.value.errors()[0]["type"] == "extra_forbidden"

    def test_keeps_required_fields_required(self):
        schema = copy_fields("create", Product)
        assert schema.model_fields["name"].is_required()
        assert not schema.model_fields["status"].is_required()

    def test_replace_matches_create_fields(self):
        create = copy_fields("create", Product)
        replace = copy_fields("replace", Product)
        assert set(create.model_fields) == set(replace.model_fields)


class TestUpdateSchema:
    def test_every_field_optional(self):
        schema = copy_fields("update", Product)
        assert all(not f.is_required() for f in schema.model_fields.values())
        assert model_to_dict(schema.model_validate({})) == {}

    def test_nested_model_is_partial(self):
        schema = copy_fields("update", Product)
        patch = schema.model_validate({"dimensions": {"width": 2}})
        assert model_to_dict(patch) == {"dimensions": {"width": 2.0}}


class TestViewSchema:
    def test_drops_virtual_and_hidden_fields(self):
        schema = copy_fields("view", Product)
        assert "password" not in schema.model_fields
        assert "cost" not in schema.model_fields
        assert "id" in schema.model_fields

    def test_type_mismatch_degrades_to_absent(self):
        schema = copy_fields("view", Product)
        view = schema.model_validate({"id": 1, "name": "Desk", "price": "lots"})
        assert view.price is ABSENT
        assert "price" not in model_to_dict(view)

    def test_extra_keys_are_kept(self):
        schema = copy_fields("view", Product)
        view = schema.model_validate({"id": 1, "legacy": True})
        assert model_to_dict(view) == {"id": 1, "legacy": True}


class TestCopySchema:
    def test_title_prefixed_with_action(self):
        schema = copy_schema("update", Product)
        assert schema.model_config["title"] == "[update] Product"

    def test_untitled_schema_stays_untitled(self):
        assert copy_schema("view", Category).model_config.get("title") is None

    def test_unknown_action(self):
        with pytest.raises(UnknownActionError):
            copy_schema("archive", Product)


class TestModelToDict:
    def test_only_supplied_fields_emitted(self):
        schema = copy_fields("create", Product)
        data = model_to_dict(schema.model_validate({"name": "Desk", "price": 3}))
        assert data == {"name": "Desk", "price": 3.0}
