from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from censusquote.core.batching import BATCH_CAPACITY, iter_batches
from censusquote.core.csvio import read_census_csv
from censusquote.core.errors import CensusQuoteError, CommitError, ParseError, RecordStoreError
from censusquote.core.schema import PersonRow
from censusquote.domain import CENSUS_ENTITY, Census, UnitOfWork
from censusquote.infrastructure.record_store import RecordStore

logger = logging.getLogger(__name__)


class Stage(str, enum.Enum):
    CREATED = "created"
    PARSING = "parsing"
    BATCHING = "batching"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class StageEvent:
    stage: Stage
    batch_index: int | None = None
    error: str | None = None


@dataclass
class IngestionResult:
    census: Census
    rows: list[PersonRow]
    batches_committed: int
    history: list[StageEvent] = field(default_factory=list)

    @property
    def census_id(self) -> str:
        return self.census.id


class IngestionPipeline:
    """Persist one census file: parent record first, then its lines in batches.

    Batches are committed strictly one after another and the first failing
    commit stops the run. Nothing already committed is undone.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        batch_size: int = BATCH_CAPACITY,
        allow_empty_census: bool = False,
        parser: Callable[[str], list[PersonRow]] = read_census_csv,
    ) -> None:
        if not 1 <= batch_size <= BATCH_CAPACITY:
            raise ValueError(f"batch_size must be between 1 and {BATCH_CAPACITY}")
        self._store = store
        self._batch_size = batch_size
        self._allow_empty_census = allow_empty_census
        self._parser = parser
        # stage history of the most recent ingest, kept when it fails
        self.last_history: list[StageEvent] = []

    @staticmethod
    def _enter(history: list[StageEvent], stage: Stage, **extra: object) -> Stage:
        batch_index = extra.get("batch_index")
        history.append(StageEvent(stage=stage, batch_index=batch_index if isinstance(batch_index, int) else None))
        logger.info("census ingestion %s", stage.value, extra={"stage": stage.value, **extra})
        return stage

    async def _create_census(self, source: str, file_id: str) -> str:
        try:
            return await self._store.create(CENSUS_ENTITY, {"body": source, "file_id": file_id})
        except RecordStoreError:
            raise
        except Exception as exc:
            raise RecordStoreError(f"could not create census: {exc}") from exc

    async def _parse(self, source: str) -> list[PersonRow]:
        try:
            rows = await asyncio.to_thread(self._parser, source)
        except ParseError:
            raise
        except ValueError as exc:
            raise ParseError(str(exc)) from exc
        if not rows and not self._allow_empty_census:
            raise ParseError("census file has a header but no rows")
        return rows

    async def _commit(self, index: int, uow: UnitOfWork, census_id: str) -> None:
        started = time.perf_counter()
        try:
            ids = await self._store.commit_unit_of_work(uow)
        except Exception as exc:
            raise CommitError(index, exc) from exc
        logger.info(
            "committed census batch",
            extra={
                "census_id": census_id,
                "batch_index": index,
                "rows": len(ids),
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )

    async def ingest(self, source: str, file_id: str) -> IngestionResult:
        history: list[StageEvent] = []
        self.last_history = history
        stage = self._enter(history, Stage.CREATED, file_id=file_id)
        census_id: str | None = None
        batch_index: int | None = None
        try:
            if not source or not source.strip():
                raise ParseError("census file is empty", stage=Stage.PARSING.value)
            census_id = await self._create_census(source, file_id)

            stage = self._enter(history, Stage.PARSING, census_id=census_id)
            rows = await self._parse(source)

            stage = self._enter(history, Stage.BATCHING, census_id=census_id, rows=len(rows))
            batches = iter_batches(
                census_id,
                rows,
                capacity=self._batch_size,
                unit_factory=self._store.new_unit_of_work,
            )
            committed = 0
            for batch_index, uow in enumerate(batches):
                stage = self._enter(history, Stage.COMMITTING, census_id=census_id, batch_index=batch_index)
                await self._commit(batch_index, uow, census_id)
                committed += 1
        except CensusQuoteError as exc:
            if exc.stage is None:
                exc.stage = stage.value
            history.append(StageEvent(stage=Stage.FAILED, batch_index=batch_index, error=exc.describe()))
            logger.error(
                "census ingestion failed: %s",
                exc.describe(),
                extra={"census_id": census_id, "file_id": file_id, "stage": exc.stage},
            )
            raise
        except asyncio.CancelledError:
            history.append(StageEvent(stage=Stage.FAILED, batch_index=batch_index, error="cancelled"))
            logger.warning(
                "census ingestion cancelled, committed batches are kept",
                extra={"census_id": census_id, "stage": stage.value, "batch_index": batch_index},
            )
            raise

        self._enter(history, Stage.DONE, census_id=census_id, rows=len(rows))
        census = Census(id=census_id, body=source, file_id=file_id)
        return IngestionResult(census=census, rows=rows, batches_committed=committed, history=history)
