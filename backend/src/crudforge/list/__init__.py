"""List request parsing and response formatting."""

from crudforge.list.default_adaptor import (
    DefaultAdaptor,
    DefaultListQuery,
    QueryListAdaptor,
    QueryListResponse,
    str_to_int,
)

__all__ = [
    "DefaultAdaptor",
    "DefaultListQuery",
    "QueryListAdaptor",
    "QueryListResponse",
    "str_to_int",
]
