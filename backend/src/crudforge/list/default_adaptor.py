"""List query adaptors.

A list adaptor translates a raw list request into a QueryListParam and a
QueryListResults back into a response body and headers. The default adaptor
understands:

    GET /products?filter=status:ACTIVE,kind:book&sort=-id&limit=5&offset=10

Filter clauses are AND-ed equality tests; ``sort`` takes one field, with a
leading ``-`` for descending order.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import BaseModel, Field

from crudforge.core.types import (
    FilterOperator,
    QueryFilter,
    QueryListParam,
    QueryListResults,
    QueryRange,
    QuerySort,
    SortDirection,
)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass
class QueryListResponse:
    body: Any
    headers: dict[str, str] = field(default_factory=dict)


class QueryListAdaptor(Protocol):
    """Contract for list request parsing and response formatting.

    ``query_schema`` is an optional pydantic model documenting the query
    string in OpenAPI.
    """

    query_schema: type[BaseModel] | None

    def parser(
        self,
        resource: str,
        query: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> QueryListParam: ...

    def response(
        self, results: QueryListResults, params: QueryListParam, name: str
    ) -> QueryListResponse: ...


class DefaultListQuery(BaseModel):
    """Query string accepted by the default list adaptor."""

    filter: str | None = Field(None, examples=["status:ACTIVE"])
    limit: str | None = Field(None, examples=["20"])
    offset: str | None = Field(None, examples=["0"])
    sort: str | None = Field(None, examples=["-id", "id", "age", "-age"])


def str_to_int(value: str | None, default: int) -> int:
    """Parse the leading integer of a string, falling back to ``default``."""
    if value is None:
        return default
    match = _LEADING_INT.match(value)
    if match is None:
        return default
    return int(match.group(1))


class DefaultAdaptor:
    query_schema: type[BaseModel] | None = DefaultListQuery

    def parser(
        self,
        resource: str,
        query: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> QueryListParam:
        query = query or {}

        filters: list[QueryFilter] = []
        for clause in (query.get("filter") or "").split(","):
            if clause.strip() == "":
                continue
            name, _, value = clause.partition(":")
            filters.append(QueryFilter(name, FilterOperator.EQUAL, value))

        sort: list[QuerySort] = []
        raw_sort = query.get("sort")
        if raw_sort:
            direction = SortDirection.DESC if raw_sort.startswith("-") else SortDirection.ASC
            sort.append(QuerySort(raw_sort.removeprefix("-"), direction))

        return QueryListParam(
            resource=resource,
            filter=tuple(filters),
            range=QueryRange(
                offset=str_to_int(query.get("offset"), 0),
                limit=str_to_int(query.get("limit"), 10),
            ),
            sort=tuple(sort),
        )

    def response(
        self, results: QueryListResults, params: QueryListParam, name: str
    ) -> QueryListResponse:
        return QueryListResponse(
            body=results["data"],
            headers={f"X-total-{name}": str(results["total"])},
        )
