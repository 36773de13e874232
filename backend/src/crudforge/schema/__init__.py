"""Schema flags, derived schemas and the resource schema coordinator.

Usage:
    from typing import Annotated
    from pydantic import BaseModel
    from crudforge.schema import Flags, ResourceSchema

    class Product(BaseModel):
        id: Annotated[int, Flags(create=False, update=False)]
        name: str
        price: Annotated[float, Flags(update="shop.manager")]

    schema = ResourceSchema("products", Product)
    patch = await schema.validate("update", {"name": "x"}, actor)
"""

from crudforge.schema.builder import ABSENT, copy_fields, copy_schema, model_to_dict
from crudforge.schema.fields import FieldFlagValidator
from crudforge.schema.flags import (
    DEFAULT_FLAGS,
    FieldSpec,
    Flags,
    Permission,
    Transform,
    build_field_table,
    flag_paths,
    get_field_flags,
    get_schema_from_path,
)
from crudforge.schema.resource_schema import ResourceSchema

__all__ = [
    "ABSENT",
    "DEFAULT_FLAGS",
    "FieldFlagValidator",
    "FieldSpec",
    "Flags",
    "Permission",
    "ResourceSchema",
    "Transform",
    "build_field_table",
    "copy_fields",
    "copy_schema",
    "flag_paths",
    "get_field_flags",
    "get_schema_from_path",
    "model_to_dict",
]
