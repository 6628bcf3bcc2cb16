from __future__ import annotations

from typing import Callable, Iterable, Iterator

from censusquote.core.schema import PersonRow
from censusquote.domain import CENSUS_LINE_ENTITY, CensusLine, UnitOfWork

BATCH_CAPACITY = 500


def census_line_for(census_id: str, row: PersonRow) -> CensusLine:
    return CensusLine(
        census_id=census_id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        gender=row.gender,
        date_of_birth=row.dob,
        state=row.state,
    )


def iter_batches(
    census_id: str,
    rows: Iterable[PersonRow],
    *,
    capacity: int = BATCH_CAPACITY,
    unit_factory: Callable[[], UnitOfWork] = UnitOfWork,
) -> Iterator[UnitOfWork]:
    """Yield units of work holding at most ``capacity`` census line creates.

    A unit is sealed only once another row needs room, so the final unit is
    always yielded, and an empty ``rows`` yields a single empty unit.
    """

    if capacity < 1:
        raise ValueError("capacity must be positive")

    current = unit_factory()
    for row in rows:
        if len(current) >= capacity:
            yield current
            current = unit_factory()
        current.register_create(CENSUS_LINE_ENTITY, census_line_for(census_id, row).fields())
    yield current


def build_batches(
    census_id: str,
    rows: Iterable[PersonRow],
    *,
    capacity: int = BATCH_CAPACITY,
    unit_factory: Callable[[], UnitOfWork] = UnitOfWork,
) -> list[UnitOfWork]:
    return list(iter_batches(census_id, rows, capacity=capacity, unit_factory=unit_factory))
