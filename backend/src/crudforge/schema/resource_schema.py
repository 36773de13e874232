"""Resource schema coordinator.

Owns the canonical model and its four derived forms, and exposes a single
``validate(action, data, actor)`` entry point:
1. structural validation against the derived model (pydantic)
2. field flag enforcement against the canonical model's field table
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from crudforge.core.errors import ConfigurationError, UnknownActionError, ValidationFailed
from crudforge.core.types import Actor, FieldValidationError, Record, ValidateAction
from crudforge.schema.builder import copy_schema, model_to_dict
from crudforge.schema.fields import FieldFlagValidator

logger = logging.getLogger(__name__)


def _loc_path(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc)


class ResourceSchema:
    """Canonical schema plus the create/replace/update/view projections.

    Raises:
        ConfigurationError: If the schema is not a model with an ``id`` field
    """

    def __init__(self, name: str, schema: type[BaseModel]):
        if not (
            isinstance(schema, type)
            and issubclass(schema, BaseModel)
            and "id" in schema.model_fields
        ):
            raise ConfigurationError("Invalid schema: Missing 'id' field")

        self.name = name
        self.model = schema
        self.create_schema = copy_schema(ValidateAction.CREATE, schema)
        self.replace_schema = copy_schema(ValidateAction.REPLACE, schema)
        self.update_schema = copy_schema(ValidateAction.UPDATE, schema)
        self.view_schema = copy_schema(ValidateAction.VIEW, schema)
        self.fields = FieldFlagValidator(schema)
        self._id_adapter = TypeAdapter(schema.model_fields["id"].annotation)

    def pick_schema(self, action: ValidateAction | str) -> type[BaseModel]:
        try:
            action = ValidateAction(action)
        except ValueError:
            raise UnknownActionError(action) from None

        if action is ValidateAction.CREATE:
            return self.create_schema
        if action is ValidateAction.REPLACE:
            return self.replace_schema
        if action is ValidateAction.UPDATE:
            return self.update_schema
        return self.view_schema

    def make_error(self, error: dict[str, Any]) -> dict[str, FieldValidationError]:
        """Translate one pydantic error into the field error shape.

        Missing (or null) required values become ``required`` and unknown
        keys become ``permission_denied``: the derived schema already drops
        what the actor may not set, so an extra key is an attempt to set it.
        Errors on the payload as a whole are keyed ``body``.
        """
        path = _loc_path(error["loc"])
        error_type = error["type"]

        if not path:
            path = "body"
            if error.get("input", ...) is None:
                return {path: {"message": "Request body is required.", "code": "required"}}

        if error_type == "missing" or (
            error_type.endswith("_type") and error.get("input", ...) is None
        ):
            return {path: {"message": f'Field "{path}" is required.', "code": "required"}}

        if error_type == "extra_forbidden":
            return {
                path: {
                    "message": f'Field "{path}" is not allowed',
                    "code": "permission_denied",
                }
            }

        return {path: {"message": error["msg"], "code": error_type}}

    def validate_data(
        self, schema: type[BaseModel], data: Any
    ) -> tuple[BaseModel | None, dict[str, FieldValidationError] | None]:
        """Structurally validate data. Returns (model, None) or (None, errors)."""
        try:
            return schema.model_validate(data), None
        except ValidationError as e:
            errors: dict[str, FieldValidationError] = {}
            for error in e.errors():
                errors.update(self.make_error(error))
            return None, errors

    async def validate(
        self,
        action: ValidateAction | str,
        data: Any,
        actor: Actor | None,
    ) -> Record:
        """Validate and sanitize data for an action.

        Raises:
            ValidationFailed: 400 on structural errors, 403 on field permissions
            UnknownActionError: For actions outside create/replace/update/view
        """
        schema = self.pick_schema(action)
        action = ValidateAction(action)

        model, errors = self.validate_data(schema, data)
        if errors:
            logger.debug("Validation failed for %s %s: %s", self.name, action.value, errors)
            raise ValidationFailed(errors, 400, "Invalid input")

        validated = model_to_dict(model)
        return await self.fields.validate_flags_object(
            action, "", validated, validated, actor
        )

    def parse_id(self, raw: Any) -> Any:
        """Coerce a transport id (usually a string) to the schema's id type."""
        try:
            return self._id_adapter.validate_python(raw)
        except ValidationError:
            return raw

    @property
    def model_title(self) -> str:
        return self.model.model_config.get("title") or self.model.__name__
