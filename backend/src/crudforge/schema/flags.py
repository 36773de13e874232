"""Per-field behavioral flags and the registry that reads them.

Flags are attached to canonical schema fields through ``Annotated``:

    class Product(BaseModel):
        id: Annotated[int, Flags(create=False, update=False)]
        name: Annotated[str, Flags(search=True)]
        price: Annotated[float, Flags(update="shop.manager")]
        cost: Annotated[float, Flags(view=False)]

A flag value is one of three variants:
- bool: allow or deny outright
- Permission: the actor must hold the named permission
- Transform: a function applied to the value (view only)

Plain strings are normalized to Permission and callables to Transform.
"""

from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass, fields, replace
from types import NoneType, UnionType
from typing import Any, Callable, Union

from pydantic import BaseModel
from pydantic.fields import FieldInfo


@dataclass(frozen=True)
class Permission:
    """Flag variant requiring the actor to hold ``name``."""

    name: str


@dataclass(frozen=True)
class Transform:
    """Flag variant rewriting a value as ``fn(value, actor, record)``.

    The function may be sync or async.
    """

    fn: Callable[..., Any]

    async def __call__(self, value: Any, actor: Any, record: Any) -> Any:
        result = self.fn(value, actor, record)
        if inspect.isawaitable(result):
            result = await result
        return result


FlagValue = Union[bool, Permission, Transform]

FLAG_NAMES = ("virtual", "create", "update", "view", "search", "filter", "sort")


def as_flag_value(raw: Any) -> FlagValue:
    """Normalize a raw flag value into its tagged variant."""
    if isinstance(raw, (bool, Permission, Transform)):
        return raw
    if isinstance(raw, str):
        return Permission(raw)
    if callable(raw):
        return Transform(raw)
    raise TypeError(f"Unsupported flag value: {raw!r}")


@dataclass(frozen=True)
class Flags:
    """Flag set attached to one field. ``None`` means "use the default"."""

    virtual: bool | None = None
    create: FlagValue | None = None
    update: FlagValue | None = None
    view: FlagValue | None = None
    search: bool | None = None
    filter: bool | None = None
    sort: bool | None = None

    def __post_init__(self) -> None:
        for name in ("create", "update", "view"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, as_flag_value(value))

    def merged(self, other: "Flags") -> "Flags":
        """Return a copy where every flag set on ``other`` wins."""
        overrides = {
            name: getattr(other, name)
            for name in FLAG_NAMES
            if getattr(other, name) is not None
        }
        return replace(self, **overrides)

    def for_action(self, flag_name: str) -> FlagValue:
        return getattr(self, flag_name)

    def items(self) -> list[tuple[str, Any]]:
        return [(f.name, getattr(self, f.name)) for f in fields(self)]


DEFAULT_FLAGS = Flags(
    virtual=False,
    create=True,
    update=True,
    view=True,
    search=False,
    filter=True,
    sort=True,
)


def get_field_flags(field: FieldInfo) -> Flags:
    """Effective flags for one field: defaults overridden by attached flags."""
    flags = DEFAULT_FLAGS
    for item in field.metadata:
        if isinstance(item, Flags):
            flags = flags.merged(item)
    return flags


def nested_model(annotation: Any) -> type[BaseModel] | None:
    """Return the model class of an object-typed field, if any.

    Handles ``Model`` and ``Model | None``; lists and other containers are
    treated as leaf values.
    """
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation

    if typing.get_origin(annotation) in (Union, UnionType):
        members = [a for a in typing.get_args(annotation) if a is not NoneType]
        if len(members) == 1:
            return nested_model(members[0])

    return None


@dataclass(frozen=True)
class FieldSpec:
    """Side-table entry for one (possibly nested) field.

    Attributes:
        path: Dot-joined path from the schema root
        info: The pydantic FieldInfo from the canonical model
        flags: Effective flags (defaults merged)
        model: Nested model class for object fields, else None
    """

    path: str
    info: FieldInfo
    flags: Flags
    model: type[BaseModel] | None = None


def build_field_table(
    schema: type[BaseModel], path: str = ""
) -> dict[str, FieldSpec]:
    """Map every dotted field path of a schema to its FieldSpec."""
    table: dict[str, FieldSpec] = {}
    for name, info in schema.model_fields.items():
        full_path = f"{path}.{name}" if path else name
        model = nested_model(info.annotation)
        table[full_path] = FieldSpec(full_path, info, get_field_flags(info), model)
        if model is not None:
            table.update(build_field_table(model, full_path))
    return table


def get_schema_from_path(schema: type[BaseModel], path: str) -> FieldInfo | None:
    """Resolve a dotted path to its FieldInfo, or None if it does not exist."""
    current: type[BaseModel] | None = schema
    info: FieldInfo | None = None

    for part in path.split("."):
        if current is None:
            return None
        info = current.model_fields.get(part)
        if info is None:
            return None
        current = nested_model(info.annotation)

    return info


def flag_paths(schema: type[BaseModel], path: str = "") -> dict[str, list[str]]:
    """Collect, per flag, the dotted paths of fields where it is not False.

    Used by storage backends to build their search/filter/sort allow-lists.
    """
    result: dict[str, list[str]] = {name: [] for name in FLAG_NAMES}

    for name, info in schema.model_fields.items():
        full_path = f"{path}.{name}" if path else name
        for flag, value in get_field_flags(info).items():
            if value is not False:
                result[flag].append(full_path)

        model = nested_model(info.annotation)
        if model is not None:
            for flag, nested in flag_paths(model, full_path).items():
                result[flag].extend(nested)

    return result
