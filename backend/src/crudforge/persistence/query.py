"""In-process evaluation of list queries.

Used by MemoryRepository. Semantics follow the SQL backend:
- filters on fields outside the filterable list are ignored
- sorts on fields outside the sortable list are ignored
- ``_search`` with ``=`` matches any searchable field, case-insensitive
"""

import logging
from collections.abc import Iterable
from typing import Any

from crudforge.core.types import (
    FilterOperator,
    QueryFilter,
    QueryListParam,
    Record,
    SortDirection,
)

logger = logging.getLogger(__name__)

SEARCH_FIELD = "_search"
_SEARCH_STRIP = str.maketrans("", "", "\"'$%")


def get_path(record: Record, path: str) -> Any:
    """Read a dotted path from a nested record, None when missing."""
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def as_list(value: Any) -> list[Any]:
    """Multi-value filter argument: a list as is, a string split on commas."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        return value.split(",")
    return [value]


def coerce_like(value: Any, like: Any) -> Any:
    """Convert a (usually string) filter value to the type of a stored value."""
    if not isinstance(value, str) or like is None or isinstance(like, str):
        return value
    if isinstance(like, bool):
        return value.lower() in ("1", "true", "yes")
    if isinstance(like, (int, float)):
        try:
            return type(like)(value)
        except ValueError:
            return value
    return value


def _compare(actual: Any, op: FilterOperator, value: Any) -> bool:
    if op is FilterOperator.NULL:
        return actual is None
    if op is FilterOperator.NOT_NULL:
        return actual is not None

    if op in (FilterOperator.IN, FilterOperator.NOT_IN):
        found = actual in [coerce_like(v, actual) for v in as_list(value)]
        return found if op is FilterOperator.IN else not found

    if op in (FilterOperator.CONTAINS, FilterOperator.NOT_CONTAINS):
        found = actual is not None and str(value).lower() in str(actual).lower()
        return found if op is FilterOperator.CONTAINS else not found

    if op in (FilterOperator.BETWEEN, FilterOperator.NOT_BETWEEN):
        if actual is None:
            return False
        low, high = (coerce_like(v, actual) for v in as_list(value)[:2])
        inside = low <= actual <= high
        return inside if op is FilterOperator.BETWEEN else not inside

    value = coerce_like(value, actual)
    if op is FilterOperator.EQUAL:
        return actual == value
    if op is FilterOperator.NOT_EQUAL:
        return actual != value

    if actual is None:
        return False
    try:
        if op is FilterOperator.GREATER:
            return actual > value
        if op is FilterOperator.GREATER_EQ:
            return actual >= value
        if op is FilterOperator.LESS:
            return actual < value
        if op is FilterOperator.LESS_EQ:
            return actual <= value
    except TypeError:
        return False

    return True


def matches_search(record: Record, term: Any, searchable: Iterable[str]) -> bool:
    needle = str(term).translate(_SEARCH_STRIP).lower()
    fields = list(searchable)
    if not fields:
        return True
    return any(
        needle in str(get_path(record, name)).lower()
        for name in fields
        if get_path(record, name) is not None
    )


def matches(
    record: Record,
    filters: Iterable[QueryFilter],
    searchable: Iterable[str],
    filterable: Iterable[str],
) -> bool:
    filterable = set(filterable)
    for flt in filters:
        op = FilterOperator(flt.op)
        if flt.field == SEARCH_FIELD and op is FilterOperator.EQUAL:
            if not matches_search(record, flt.value, searchable):
                return False
            continue

        if flt.field not in filterable:
            logger.debug('Field "%s" is not filterable', flt.field)
            continue

        if not _compare(get_path(record, flt.field), op, flt.value):
            return False

    return True


def _sort_key(path: str):
    def key(record: Record) -> tuple[bool, Any]:
        value = get_path(record, path)
        return (value is not None, value)

    return key


def apply_query(
    records: Iterable[Record],
    params: QueryListParam,
    searchable: Iterable[str] = (),
    filterable: Iterable[str] = (),
    sortable: Iterable[str] = (),
) -> tuple[list[Record], int]:
    """Filter, sort and page records. Returns (page, total before paging)."""
    searchable = list(searchable)
    rows = [r for r in records if matches(r, params.filter, searchable, filterable)]
    total = len(rows)

    sortable = set(sortable)
    # Stable sorts applied last-key-first give a multi-key ordering
    for sort in reversed(params.sort):
        if sort.field not in sortable:
            logger.debug('Field "%s" is not sortable', sort.field)
            continue
        rows.sort(
            key=_sort_key(sort.field),
            reverse=SortDirection(sort.direction) is SortDirection.DESC,
        )

    offset = max(params.range.offset, 0)
    limit = max(params.range.limit, 0)
    return rows[offset : offset + limit], total
