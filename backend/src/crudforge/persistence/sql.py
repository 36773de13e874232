"""SQL repository over SQLAlchemy Core.

Works on one table, either reflected from the database or created from the
canonical model. Engine calls are blocking and run in a worker thread.

Identifier handling is left to SQLAlchemy, so camelCase column names and
reserved words are quoted as needed on every dialect.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import typing
from types import NoneType, UnionType
from typing import Any, Union

from pydantic import BaseModel
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    and_,
    func,
    or_,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.sql.elements import ColumnElement

from crudforge.core.types import (
    FilterOperator,
    QueryFilter,
    QueryListParam,
    QueryListResults,
    Record,
    SortDirection,
    TypeID,
)
from crudforge.persistence.query import SEARCH_FIELD, as_list
from crudforge.schema.flags import flag_paths, nested_model

logger = logging.getLogger(__name__)

_SEARCH_STRIP = str.maketrans("", "", "\"'$%")

_COLUMN_TYPES: dict[Any, Any] = {
    bool: Boolean,
    int: Integer,
    float: Float,
    str: String,
    datetime.datetime: DateTime,
    datetime.date: Date,
}


def _unwrap_optional(annotation: Any) -> Any:
    if typing.get_origin(annotation) in (Union, UnionType):
        members = [a for a in typing.get_args(annotation) if a is not NoneType]
        if len(members) == 1:
            return members[0]
    return annotation


def get_column_type(annotation: Any) -> Any:
    """Map a field annotation to a SQLAlchemy column type.

    Nested models and containers are stored as JSON.
    """
    annotation = _unwrap_optional(annotation)
    if nested_model(annotation) is not None:
        return JSON
    return _COLUMN_TYPES.get(annotation, JSON if typing.get_origin(annotation) else String)


def table_from_schema(metadata: MetaData, table_name: str, schema: type[BaseModel]) -> Table:
    """Build a Table definition from a canonical model.

    The ``id`` field becomes the primary key; integer ids autoincrement.
    """
    columns = []
    for name, info in schema.model_fields.items():
        column_type = get_column_type(info.annotation)
        if name == "id":
            columns.append(
                Column(name, column_type, primary_key=True, autoincrement=column_type is Integer)
            )
        else:
            columns.append(Column(name, column_type, nullable=not info.is_required()))
    return Table(table_name, metadata, *columns)


def _coerce_for_column(column: Any, value: Any) -> Any:
    """Convert a string filter value to the column's Python type when possible."""
    if not isinstance(value, str):
        return value
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if python_type is bool:
        return value.lower() in ("1", "true", "yes")
    if python_type in (int, float):
        try:
            return python_type(value)
        except ValueError:
            return value
    return value


class SQLRepository:
    """Repository provider for one SQL table.

    Args:
        engine: SQLAlchemy engine
        table_name: Table holding the records
        schema: Canonical model; decides searchable/filterable/sortable
            columns and, with ``create_table``, the table layout
        name: Resource name, defaults to the table name
        create_table: Create the table from the schema if it does not exist,
            otherwise reflect it from the database
    """

    def __init__(
        self,
        engine: Engine,
        table_name: str,
        schema: type[BaseModel],
        name: str | None = None,
        create_table: bool = False,
    ):
        self.engine = engine
        self.schema = schema
        self.name = name or table_name

        metadata = MetaData()
        if create_table:
            self.table = table_from_schema(metadata, table_name, schema)
            metadata.create_all(engine, tables=[self.table])
        else:
            self.table = Table(table_name, metadata, autoload_with=engine)

        flags = flag_paths(schema)
        columns = set(self.table.c.keys())
        self.searchable_fields = [f for f in flags["search"] if f in columns]
        self.filterable_fields = [f for f in flags["filter"] if f in columns]
        self.sortable_fields = [f for f in flags["sort"] if f in columns]

    @property
    def _pk(self) -> Any:
        return self.table.c["id"]

    def _columns_only(self, data: Record) -> Record:
        return {k: v for k, v in data.items() if k in self.table.c}

    # ------------------------------------------------------------------
    # Blocking implementations
    # ------------------------------------------------------------------

    def _get(self, id: TypeID) -> Record | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(self.table).where(self._pk == id)).mappings().first()
        return dict(row) if row else None

    def _create(self, data: Record) -> Record:
        values = self._columns_only(data)
        if values.get("id") is None:
            values.pop("id", None)
        with self.engine.begin() as conn:
            result = conn.execute(self.table.insert().values(**values))
            id = data.get("id")
            if id is None:
                id = result.inserted_primary_key[0]
        return self._get(id)  # type: ignore[return-value]

    def _update(self, id: TypeID, patch: Record) -> Record | None:
        values = {k: v for k, v in self._columns_only(patch).items() if k != "id"}
        with self.engine.begin() as conn:
            if values:
                result = conn.execute(
                    self.table.update().where(self._pk == id).values(**values)
                )
                if result.rowcount == 0:
                    return None
        return self._get(id)

    def _replace(self, id: TypeID, data: Record) -> Record | None:
        values = self._columns_only(data)
        values["id"] = id
        with self.engine.begin() as conn:
            result = conn.execute(self.table.delete().where(self._pk == id))
            if result.rowcount == 0:
                return None
            conn.execute(self.table.insert().values(**values))
        return self._get(id)

    def _delete(self, id: TypeID) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(self.table.delete().where(self._pk == id))
        return result.rowcount

    def _condition(self, flt: QueryFilter) -> ColumnElement[bool] | None:
        op = FilterOperator(flt.op)

        if flt.field == SEARCH_FIELD and op is FilterOperator.EQUAL:
            if not self.searchable_fields:
                return None
            term = f"%{str(flt.value).translate(_SEARCH_STRIP)}%"
            return or_(*(self.table.c[f].ilike(term) for f in self.searchable_fields))

        if flt.field not in self.filterable_fields:
            logger.debug('Field "%s" is not filterable', flt.field)
            return None

        column = self.table.c[flt.field]
        value = _coerce_for_column(column, flt.value)
        values = [_coerce_for_column(column, v) for v in as_list(flt.value)]

        if op is FilterOperator.EQUAL:
            return column == value
        if op is FilterOperator.NOT_EQUAL:
            return column != value
        if op is FilterOperator.GREATER:
            return column > value
        if op is FilterOperator.GREATER_EQ:
            return column >= value
        if op is FilterOperator.LESS:
            return column < value
        if op is FilterOperator.LESS_EQ:
            return column <= value
        if op is FilterOperator.IN:
            return column.in_(values)
        if op is FilterOperator.NOT_IN:
            return column.not_in(values)
        if op is FilterOperator.CONTAINS:
            return column.ilike(f"%{flt.value}%")
        if op is FilterOperator.NOT_CONTAINS:
            return column.not_ilike(f"%{flt.value}%")
        if op is FilterOperator.BETWEEN:
            return column.between(values[0], values[1])
        if op is FilterOperator.NOT_BETWEEN:
            return ~column.between(values[0], values[1])
        if op is FilterOperator.NULL:
            return column.is_(None)
        return column.is_not(None)

    def _list(self, params: QueryListParam) -> QueryListResults:
        conditions = [c for c in (self._condition(f) for f in params.filter) if c is not None]
        where = and_(*conditions) if conditions else None

        query = select(self.table)
        count = select(func.count()).select_from(self.table)
        if where is not None:
            query = query.where(where)
            count = count.where(where)

        for sort in params.sort:
            if sort.field not in self.sortable_fields:
                logger.debug('Field "%s" is not sortable', sort.field)
                continue
            column = self.table.c[sort.field]
            desc = SortDirection(sort.direction) is SortDirection.DESC
            query = query.order_by(column.desc() if desc else column.asc())

        query = query.offset(params.range.offset).limit(params.range.limit)
        logger.debug("SQL Query: %s", query)

        with self.engine.connect() as conn:
            rows = [dict(r) for r in conn.execute(query).mappings()]
            total = conn.execute(count).scalar_one()

        return {"data": rows, "total": total}

    # ------------------------------------------------------------------
    # Repository contract
    # ------------------------------------------------------------------

    async def get(self, id: TypeID) -> Record | None:
        return await asyncio.to_thread(self._get, id)

    async def create(self, data: Record) -> Record:
        return await asyncio.to_thread(self._create, data)

    async def update(self, id: TypeID, patch: Record) -> Record | None:
        return await asyncio.to_thread(self._update, id, patch)

    async def replace(self, id: TypeID, data: Record) -> Record | None:
        return await asyncio.to_thread(self._replace, id, data)

    async def delete(self, id: TypeID) -> int:
        return await asyncio.to_thread(self._delete, id)

    async def list(self, params: QueryListParam) -> QueryListResults:
        return await asyncio.to_thread(self._list, params)
