"""Domain entities for census ingestion."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

CENSUS_ENTITY = "census"
CENSUS_LINE_ENTITY = "census_line"


@dataclass(frozen=True, slots=True)
class Census:
    """Parent record for one ingested census file."""

    id: str
    body: str
    file_id: str


@dataclass(frozen=True, slots=True)
class CensusLine:
    """One covered person persisted under a :class:`Census`."""

    census_id: str
    first_name: str
    last_name: str
    email: str
    gender: str
    date_of_birth: date
    state: str

    def fields(self) -> dict[str, Any]:
        return {
            "census_id": self.census_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "gender": self.gender,
            "date_of_birth": self.date_of_birth,
            "state": self.state,
        }


@dataclass(frozen=True, slots=True)
class PendingCreate:
    entity_type: str
    fields: dict[str, Any]


@dataclass(slots=True)
class UnitOfWork:
    """Ordered set of create operations committed together by a record store."""

    operations: list[PendingCreate] = field(default_factory=list)

    def register_create(self, entity_type: str, fields: dict[str, Any]) -> None:
        self.operations.append(PendingCreate(entity_type=entity_type, fields=dict(fields)))

    def __len__(self) -> int:
        return len(self.operations)
