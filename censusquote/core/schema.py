from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, constr

Money = constr(pattern=r"^-?\d+\.\d{2}$")


class PersonRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str
    last_name: str
    email: str
    gender: str
    dob: date
    state: str


class CensusEvent(BaseModel):
    """Chat event announcing an uploaded census file."""

    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(min_length=1)
    file_id: str = Field(alias="fileid", min_length=1)
    ts: str | None = None


class QuoteRow(BaseModel):
    age_range: str
    small: Money
    significant: Money
    major: Money


class QuoteTable(BaseModel):
    band1: QuoteRow
    band2: QuoteRow
    band3: QuoteRow

    def rows(self) -> list[QuoteRow]:
        return [self.band1, self.band2, self.band3]


class QuoteReport(BaseModel):
    census_id: str
    rows: int
    batches: int
    quote: QuoteTable
    age_bands: dict[str, float]
    permalinks: dict[str, str] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
