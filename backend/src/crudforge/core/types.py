"""Core types shared across the schema, resource and persistence layers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, TypedDict

TypeID = str | int
Record = dict[str, Any]


class ValidateAction(str, Enum):
    """Actions a payload can be validated for. Each has a derived schema."""

    CREATE = "create"
    REPLACE = "replace"
    UPDATE = "update"
    VIEW = "view"

    @property
    def flag_name(self) -> str:
        """Flag consulted for this action. Replace shares the create flag."""
        if self is ValidateAction.REPLACE:
            return ValidateAction.CREATE.value
        return self.value


class ResourceAction(str, Enum):
    """CRUD actions a resource can expose, one per repository method."""

    GET = "get"
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    LIST = "list"


class FilterOperator(str, Enum):
    EQUAL = "="
    NOT_EQUAL = "!="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    IN = "in"
    NOT_IN = "!in"
    CONTAINS = "contains"
    NOT_CONTAINS = "!contains"
    BETWEEN = "between"
    NOT_BETWEEN = "!between"
    NULL = "null"
    NOT_NULL = "!null"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class FieldValidationError(TypedDict):
    message: str
    code: str


class QueryListResults(TypedDict):
    data: list[Record]
    total: int


@dataclass(frozen=True)
class Actor:
    """Authenticated identity with a flat, lowercased permission set.

    Attributes:
        permissions: Permission strings granted to the actor
        id: Optional identifier (user id, api key name)
        claims: Free-form extra data from the authentication method
    """

    permissions: frozenset[str] = frozenset()
    id: TypeID | None = None
    claims: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "permissions", frozenset(p.lower() for p in self.permissions)
        )


@dataclass(frozen=True)
class QueryFilter:
    field: str
    op: FilterOperator
    value: Any = None


@dataclass(frozen=True)
class QueryRange:
    offset: int = 0
    limit: int = 10


@dataclass(frozen=True)
class QuerySort:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class QueryListParam:
    """Structured list query, built once per list request."""

    resource: str
    filter: tuple[QueryFilter, ...] = ()
    range: QueryRange = field(default_factory=QueryRange)
    sort: tuple[QuerySort, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ResourceRequest:
    """Transport-neutral request handed to resource handlers."""

    method: str = "GET"
    path: str = ""
    query: dict[str, str] | None = None
    params: dict[str, str] | None = None
    body: Any = None
    headers: dict[str, str] | None = None
    actor: Actor | None = None
    request: Any = None


@dataclass
class HttpResponse:
    body: Any
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
