import asyncio

import pytest

from censusquote.core.errors import CommitError, ParseError, RecordStoreError
from censusquote.domain import CENSUS_ENTITY, CENSUS_LINE_ENTITY, UnitOfWork
from censusquote.infrastructure import InMemoryRecordStore
from censusquote.workers.pipeline import IngestionPipeline, Stage

HEADER = "first_name,last_name,email,gender,dob,state\n"


def _census_csv(count: int) -> str:
    lines = [f"First{i},Last{i},person{i}@example.com,{'F' if i % 2 else 'M'},1980-03-{1 + i % 28:02d},WA" for i in range(count)]
    return HEADER + "\n".join(lines) + ("\n" if lines else "")


class RecordingStore(InMemoryRecordStore):
    def __init__(
        self,
        *,
        fail_on_commit: int | None = None,
        cancel_on_commit: int | None = None,
        fail_create: bool = False,
    ) -> None:
        super().__init__()
        self.fail_on_commit = fail_on_commit
        self.cancel_on_commit = cancel_on_commit
        self.fail_create = fail_create
        self.attempts: list[int] = []

    async def create(self, entity_type, fields):
        if self.fail_create:
            raise RuntimeError("store offline")
        return await super().create(entity_type, fields)

    async def commit_unit_of_work(self, uow: UnitOfWork) -> list[str]:
        index = len(self.attempts)
        self.attempts.append(len(uow))
        if index == self.fail_on_commit:
            raise RuntimeError("commit rejected")
        if index == self.cancel_on_commit:
            raise asyncio.CancelledError()
        return await super().commit_unit_of_work(uow)


def test_ingest_commits_batches_in_order():
    store = RecordingStore()
    pipeline = IngestionPipeline(store)
    source = _census_csv(1200)

    result = asyncio.run(pipeline.ingest(source, "F0001"))

    assert result.batches_committed == 3
    assert store.commit_sizes == [500, 500, 200]
    assert len(result.rows) == 1200
    assert (result.census.file_id, result.census.body) == ("F0001", source)

    census = store.get(CENSUS_ENTITY, result.census_id)
    assert census == {"id": result.census_id, "body": source, "file_id": "F0001"}

    lines = store.list_records(CENSUS_LINE_ENTITY)
    assert [line["email"] for line in lines] == [f"person{i}@example.com" for i in range(1200)]
    assert {line["census_id"] for line in lines} == {result.census_id}


def test_stage_history():
    pipeline = IngestionPipeline(InMemoryRecordStore(), batch_size=2)

    result = asyncio.run(pipeline.ingest(_census_csv(3), "F0002"))

    assert [event.stage for event in result.history] == [
        Stage.CREATED,
        Stage.PARSING,
        Stage.BATCHING,
        Stage.COMMITTING,
        Stage.COMMITTING,
        Stage.DONE,
    ]
    assert [event.batch_index for event in result.history if event.stage is Stage.COMMITTING] == [0, 1]


def test_commit_failure_stops_later_batches():
    store = RecordingStore(fail_on_commit=1)
    pipeline = IngestionPipeline(store)

    with pytest.raises(CommitError) as excinfo:
        asyncio.run(pipeline.ingest(_census_csv(1200), "F0003"))

    error = excinfo.value
    assert error.batch_index == 1
    assert error.stage == "committing"
    assert isinstance(error.cause, RuntimeError)
    assert "batch 1" in error.describe()
    assert store.attempts == [500, 500]
    assert store.commit_sizes == [500]
    # no compensation: parent and first batch stay
    assert len(store.list_records(CENSUS_ENTITY)) == 1
    assert len(store.list_records(CENSUS_LINE_ENTITY)) == 500


def test_cancellation_propagates_and_keeps_committed_batches():
    store = RecordingStore(cancel_on_commit=1)
    pipeline = IngestionPipeline(store)

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(pipeline.ingest(_census_csv(1200), "F0009"))

    last = pipeline.last_history[-1]
    assert (last.stage, last.batch_index, last.error) == (Stage.FAILED, 1, "cancelled")
    assert pipeline.last_history[-2].stage is Stage.COMMITTING
    assert store.attempts == [500, 500]
    assert store.commit_sizes == [500]
    assert len(store.list_records(CENSUS_LINE_ENTITY)) == 500


def test_failed_ingest_history_is_kept():
    pipeline = IngestionPipeline(RecordingStore(fail_on_commit=0))

    with pytest.raises(CommitError):
        asyncio.run(pipeline.ingest(_census_csv(3), "F0010"))

    assert [event.stage for event in pipeline.last_history] == [
        Stage.CREATED,
        Stage.PARSING,
        Stage.BATCHING,
        Stage.COMMITTING,
        Stage.FAILED,
    ]
    assert pipeline.last_history[-1].batch_index == 0


@pytest.mark.parametrize("batch_size", [0, 501, 1000])
def test_batch_size_is_capped_at_unit_of_work_limit(batch_size):
    with pytest.raises(ValueError):
        IngestionPipeline(InMemoryRecordStore(), batch_size=batch_size)


def test_census_create_failure_is_fatal():
    store = RecordingStore(fail_create=True)
    pipeline = IngestionPipeline(store)

    with pytest.raises(RecordStoreError) as excinfo:
        asyncio.run(pipeline.ingest(_census_csv(2), "F0004"))

    assert excinfo.value.stage == "created"
    assert store.attempts == []


@pytest.mark.parametrize("source", ["", " \n "])
def test_blank_source_fails_before_any_store_call(source):
    store = RecordingStore()
    pipeline = IngestionPipeline(store)

    with pytest.raises(ParseError) as excinfo:
        asyncio.run(pipeline.ingest(source, "F0005"))

    assert excinfo.value.stage == "parsing"
    assert store.list_records(CENSUS_ENTITY) == []
    assert store.attempts == []


def test_header_only_source_commits_no_lines():
    store = RecordingStore()
    pipeline = IngestionPipeline(store)

    with pytest.raises(ParseError, match="no rows"):
        asyncio.run(pipeline.ingest(HEADER, "F0006"))

    assert len(store.list_records(CENSUS_ENTITY)) == 1
    assert store.attempts == []
    assert store.list_records(CENSUS_LINE_ENTITY) == []


def test_empty_census_allowed_commits_one_empty_batch():
    store = RecordingStore()
    pipeline = IngestionPipeline(store, allow_empty_census=True)

    result = asyncio.run(pipeline.ingest(HEADER, "F0007"))

    assert result.rows == []
    assert result.batches_committed == 1
    assert store.commit_sizes == [0]


def test_malformed_source_reports_parsing_stage():
    store = RecordingStore()
    pipeline = IngestionPipeline(store)

    with pytest.raises(ParseError) as excinfo:
        asyncio.run(pipeline.ingest("name,age\nAda,36\n", "F0008"))

    assert excinfo.value.stage == "parsing"
    assert "parsing failed" in excinfo.value.describe()
    assert store.attempts == []


def test_lines_for_unknown_census_are_rejected():
    store = InMemoryRecordStore()
    uow = store.new_unit_of_work()
    uow.register_create(CENSUS_LINE_ENTITY, {"census_id": "missing"})

    with pytest.raises(RecordStoreError):
        asyncio.run(store.commit_unit_of_work(uow))
    assert store.commit_sizes == []
