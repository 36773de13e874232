"""Derive per-action schemas from a canonical pydantic model.

For each action the canonical model is projected into a new model class:
- create/replace: fields flagged ``create=False`` dropped, extra keys forbidden
- update: same as create but every field optional
- view: virtual fields dropped, everything optional, extra keys allowed and
  type mismatches degrade to ABSENT instead of failing
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, WrapValidator, create_model
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined

from crudforge.core.errors import UnknownActionError
from crudforge.core.types import ValidateAction
from crudforge.schema.flags import Flags, get_field_flags, nested_model


class _Absent:
    """Marker for a view field whose value could not be read."""

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


def _absent_on_error(value: Any, handler: Any) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return ABSENT


def _coerce_action(action: ValidateAction | str) -> ValidateAction:
    try:
        return ValidateAction(action)
    except ValueError:
        raise UnknownActionError(action) from None


def _replace_nested(annotation: Any, nested: type[BaseModel]) -> Any:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return nested
    # Model | None
    return Optional[nested]


def _copy_field(
    action: ValidateAction,
    info: FieldInfo,
    annotation: Any,
    flags: Flags,
) -> tuple[Any, FieldInfo]:
    """Rebuild one field for the derived model.

    Constraint metadata is carried over, attached Flags are replaced by the
    resolved set so downstream consumers never have to merge defaults again.
    """
    metadata = [m for m in info.metadata if not isinstance(m, Flags)]
    metadata.append(flags)

    if action is ValidateAction.VIEW:
        metadata.append(WrapValidator(_absent_on_error))

    kwargs: dict[str, Any] = {
        "alias": info.alias,
        "title": info.title,
        "description": info.description,
        "examples": info.examples,
        "json_schema_extra": info.json_schema_extra,
    }

    if action in (ValidateAction.UPDATE, ValidateAction.VIEW):
        kwargs["default"] = None
    elif info.default_factory is not None:
        kwargs["default_factory"] = info.default_factory
    elif info.default is not PydanticUndefined:
        kwargs["default"] = info.default

    return Annotated[(annotation, *metadata)], Field(**kwargs)


def copy_fields(
    action: ValidateAction | str,
    schema: type[BaseModel],
    title: str | None = None,
) -> type[BaseModel]:
    """Project a canonical model into the derived model for ``action``.

    Nested object fields are projected first, depth-first, with the same
    action.
    """
    action = _coerce_action(action)
    fields: dict[str, Any] = {}

    for name, info in schema.model_fields.items():
        flags = get_field_flags(info)

        if flags.for_action(action.flag_name) is False:
            continue

        if action is ValidateAction.VIEW and flags.virtual:
            continue

        annotation = info.annotation
        model = nested_model(annotation)
        if model is not None:
            annotation = _replace_nested(annotation, copy_fields(action, model))

        fields[name] = _copy_field(action, info, annotation, flags)

    extra = "allow" if action is ValidateAction.VIEW else "forbid"
    return create_model(
        f"{schema.__name__}{action.value.capitalize()}",
        __config__=ConfigDict(extra=extra, title=title),
        **fields,
    )


def copy_schema(
    action: ValidateAction | str, schema: type[BaseModel]
) -> type[BaseModel]:
    """Like copy_fields, plus an ``[action]`` prefix on the model title."""
    action = _coerce_action(action)
    title = schema.model_config.get("title")
    return copy_fields(action, schema, f"[{action.value}] {title}" if title else None)


def model_to_dict(model: BaseModel) -> dict[str, Any]:
    """Convert a validated derived model into plain data.

    Only fields the input actually supplied are emitted (defaults are left
    to the storage backend), ABSENT values are dropped and extra keys of
    view models are kept.
    """
    output: dict[str, Any] = {}
    fields_set = model.model_fields_set

    for name in type(model).model_fields:
        if name not in fields_set:
            continue

        value = getattr(model, name)
        if value is ABSENT:
            continue
        output[name] = _plain(value)

    if model.model_extra:
        output.update(model.model_extra)

    return output


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return model_to_dict(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value

