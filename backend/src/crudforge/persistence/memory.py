"""In-memory repository.

Stores records in a dict keyed by id. Useful for tests, prototypes and
small read-mostly datasets loaded at startup.
"""

from __future__ import annotations

import copy
import itertools
import logging
from collections.abc import Callable, Iterable

from pydantic import BaseModel

from crudforge.core.types import QueryListParam, QueryListResults, Record, TypeID
from crudforge.persistence.query import apply_query
from crudforge.schema.flags import build_field_table, flag_paths

logger = logging.getLogger(__name__)


class MemoryRepository:
    """Repository provider over a process-local dict.

    Args:
        schema: Canonical model; its defaults fill fields missing on create
            and replace, and its flags decide what is searchable, filterable
            and sortable
        name: Resource name
        records: Initial records, each carrying an ``id``
        id_factory: Returns a fresh id; defaults to an integer sequence
            continuing after the largest integer id in ``records``
    """

    def __init__(
        self,
        schema: type[BaseModel],
        name: str,
        records: Iterable[Record] | None = None,
        id_factory: Callable[[], TypeID] | None = None,
    ):
        self.schema = schema
        self.name = name
        self._records: dict[TypeID, Record] = {}

        for record in records or []:
            self._records[record["id"]] = copy.deepcopy(record)

        if id_factory is None:
            start = max((k for k in self._records if isinstance(k, int)), default=0) + 1
            counter = itertools.count(start)
            id_factory = lambda: next(counter)  # noqa: E731
        self._next_id = id_factory

        flags = flag_paths(schema)
        self.searchable_fields = flags["search"]
        self.filterable_fields = flags["filter"]
        # Object containers have no ordering, only their leaf fields do
        containers = {p for p, spec in build_field_table(schema).items() if spec.model}
        self.sortable_fields = [p for p in flags["sort"] if p not in containers]

    def _with_defaults(self, data: Record) -> Record:
        record: Record = {}
        for name, info in self.schema.model_fields.items():
            if name not in data and not info.is_required():
                record[name] = info.get_default(call_default_factory=True)
        record.update(copy.deepcopy(data))
        return record

    async def get(self, id: TypeID) -> Record | None:
        record = self._records.get(id)
        return copy.deepcopy(record) if record is not None else None

    async def create(self, data: Record) -> Record:
        record = self._with_defaults(data)
        if record.get("id") is None:
            record["id"] = self._next_id()
        self._records[record["id"]] = record
        logger.debug("Created %s %s", self.name, record["id"])
        return copy.deepcopy(record)

    async def update(self, id: TypeID, patch: Record) -> Record | None:
        record = self._records.get(id)
        if record is None:
            return None
        record.update(copy.deepcopy({k: v for k, v in patch.items() if k != "id"}))
        return copy.deepcopy(record)

    async def replace(self, id: TypeID, data: Record) -> Record | None:
        if id not in self._records:
            return None
        record = self._with_defaults(data)
        record["id"] = id
        self._records[id] = record
        return copy.deepcopy(record)

    async def delete(self, id: TypeID) -> int:
        return 1 if self._records.pop(id, None) is not None else 0

    async def list(self, params: QueryListParam) -> QueryListResults:
        page, total = apply_query(
            self._records.values(),
            params,
            self.searchable_fields,
            self.filterable_fields,
            self.sortable_fields,
        )
        return {"data": copy.deepcopy(page), "total": total}

    def __len__(self) -> int:
        return len(self._records)

    def all(self) -> list[Record]:
        return [copy.deepcopy(r) for r in self._records.values()]

