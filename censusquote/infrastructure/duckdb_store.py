"""DuckDB-backed record store.

Each unit of work is committed inside its own transaction, so a failing
create leaves none of its siblings behind. Statements run in a worker thread
and are serialized on a lock because a DuckDB connection is not safe for
concurrent use.
"""
from __future__ import annotations

import asyncio
import threading
import uuid
from typing import Any

import duckdb
import pandas as pd

from censusquote.core.errors import RecordStoreError
from censusquote.domain import CENSUS_ENTITY, CENSUS_LINE_ENTITY, UnitOfWork

_COLUMNS: dict[str, tuple[str, ...]] = {
    CENSUS_ENTITY: ("body", "file_id"),
    CENSUS_LINE_ENTITY: ("census_id", "first_name", "last_name", "email", "gender", "date_of_birth", "state"),
}

_DDL = (
    """
    CREATE TABLE IF NOT EXISTS census (
        id VARCHAR PRIMARY KEY,
        body VARCHAR NOT NULL,
        file_id VARCHAR NOT NULL,
        created_at TIMESTAMP DEFAULT current_timestamp
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS census_line (
        id VARCHAR PRIMARY KEY,
        census_id VARCHAR NOT NULL REFERENCES census (id),
        first_name VARCHAR,
        last_name VARCHAR,
        email VARCHAR,
        gender VARCHAR,
        date_of_birth DATE,
        state VARCHAR
    )
    """,
)


class DuckDBRecordStore:
    def __init__(self, path: str = ":memory:") -> None:
        self._path = path
        self._lock = threading.Lock()
        self._conn = duckdb.connect(path)
        for statement in _DDL:
            self._conn.execute(statement)

    def _insert(self, entity_type: str, fields: dict[str, Any]) -> str:
        columns = _COLUMNS.get(entity_type)
        if columns is None:
            raise RecordStoreError(f"unknown entity type {entity_type!r}")
        unknown = sorted(set(fields) - set(columns))
        if unknown:
            raise RecordStoreError(f"unknown {entity_type} fields: {', '.join(unknown)}")

        record_id = uuid.uuid4().hex
        names = ", ".join(("id", *columns))
        placeholders = ", ".join("?" for _ in range(len(columns) + 1))
        values = [record_id, *(fields.get(column) for column in columns)]
        self._conn.execute(f"INSERT INTO {entity_type} ({names}) VALUES ({placeholders})", values)
        return record_id

    def _create_sync(self, entity_type: str, fields: dict[str, Any]) -> str:
        with self._lock:
            try:
                return self._insert(entity_type, fields)
            except duckdb.Error as exc:
                raise RecordStoreError(f"could not create {entity_type}: {exc}") from exc

    def _commit_sync(self, uow: UnitOfWork) -> list[str]:
        with self._lock:
            self._conn.begin()
            try:
                ids = [self._insert(op.entity_type, op.fields) for op in uow.operations]
            except (duckdb.Error, RecordStoreError) as exc:
                self._conn.rollback()
                if isinstance(exc, RecordStoreError):
                    raise
                raise RecordStoreError(f"unit of work rolled back: {exc}") from exc
            self._conn.commit()
            return ids

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------
    async def create(self, entity_type: str, fields: dict[str, Any]) -> str:
        return await asyncio.to_thread(self._create_sync, entity_type, fields)

    def new_unit_of_work(self) -> UnitOfWork:
        return UnitOfWork()

    async def commit_unit_of_work(self, uow: UnitOfWork) -> list[str]:
        return await asyncio.to_thread(self._commit_sync, uow)

    # ------------------------------------------------------------------
    # read helpers
    # ------------------------------------------------------------------
    def read_table(self, entity_type: str) -> pd.DataFrame:
        if entity_type not in _COLUMNS:
            raise RecordStoreError(f"unknown entity type {entity_type!r}")
        with self._lock:
            return self._conn.execute(f"SELECT * FROM {entity_type} ORDER BY rowid").fetchdf()

    def close(self) -> None:
        with self._lock:
            self._conn.close()
