"""Record store contract and an in-memory implementation."""
from __future__ import annotations

from typing import Any, Protocol

from censusquote.core.errors import RecordStoreError
from censusquote.domain import CENSUS_ENTITY, CENSUS_LINE_ENTITY, PendingCreate, UnitOfWork


class RecordStore(Protocol):
    """Persistence contract for census records."""

    async def create(self, entity_type: str, fields: dict[str, Any]) -> str: ...

    def new_unit_of_work(self) -> UnitOfWork: ...

    async def commit_unit_of_work(self, uow: UnitOfWork) -> list[str]: ...


class InMemoryRecordStore:
    """Simple in-memory store for fast iteration and tests.

    Commits are all-or-nothing: every pending create of a unit of work is
    validated before any of them becomes visible.
    """

    ENTITY_TYPES = (CENSUS_ENTITY, CENSUS_LINE_ENTITY)

    def __init__(self) -> None:
        self._records: dict[str, dict[str, dict[str, Any]]] = {name: {} for name in self.ENTITY_TYPES}
        self._counter = 0
        self.commit_sizes: list[int] = []

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _next_id(self, entity_type: str) -> str:
        self._counter += 1
        return f"{entity_type}-{self._counter:06d}"

    def _check(self, op: PendingCreate) -> None:
        if op.entity_type not in self._records:
            raise RecordStoreError(f"unknown entity type {op.entity_type!r}")
        if op.entity_type == CENSUS_LINE_ENTITY:
            census_id = op.fields.get("census_id")
            if census_id not in self._records[CENSUS_ENTITY]:
                raise RecordStoreError(f"census {census_id!r} does not exist")

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------
    async def create(self, entity_type: str, fields: dict[str, Any]) -> str:
        op = PendingCreate(entity_type=entity_type, fields=dict(fields))
        self._check(op)
        record_id = self._next_id(entity_type)
        self._records[entity_type][record_id] = dict(op.fields)
        return record_id

    def new_unit_of_work(self) -> UnitOfWork:
        return UnitOfWork()

    async def commit_unit_of_work(self, uow: UnitOfWork) -> list[str]:
        for op in uow.operations:
            self._check(op)
        ids: list[str] = []
        for op in uow.operations:
            record_id = self._next_id(op.entity_type)
            self._records[op.entity_type][record_id] = dict(op.fields)
            ids.append(record_id)
        self.commit_sizes.append(len(uow))
        return ids

    # ------------------------------------------------------------------
    # read helpers
    # ------------------------------------------------------------------
    def get(self, entity_type: str, record_id: str) -> dict[str, Any] | None:
        record = self._records.get(entity_type, {}).get(record_id)
        return {"id": record_id, **record} if record is not None else None

    def list_records(self, entity_type: str) -> list[dict[str, Any]]:
        return [{"id": record_id, **fields} for record_id, fields in self._records.get(entity_type, {}).items()]
