from __future__ import annotations

import io
from datetime import date
from pathlib import Path
from typing import Iterable

import pandas as pd
from pydantic import ValidationError

from censusquote.core.errors import ParseError
from censusquote.core.schema import PersonRow

CENSUS_COLUMNS = ("first_name", "last_name", "email", "gender", "dob", "state")


def write_records_to_csv(path: Path, rows: Iterable[dict]) -> Path:
    df = pd.DataFrame(rows)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path


def _normalise_columns(dataframe: pd.DataFrame) -> pd.DataFrame:
    renamed = {col: str(col).strip().lower() for col in dataframe.columns}
    return dataframe.rename(columns=renamed)


def _cell(value: object) -> str:
    # short rows are padded with NaN by pandas
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def _parse_dob(value: str) -> date:
    if not value:
        raise ValueError("date of birth is blank")
    timestamp = pd.to_datetime(value)
    if pd.isna(timestamp):
        raise ValueError(f"unrecognised date {value!r}")
    return timestamp.date()


def read_census_csv(text: str) -> list[PersonRow]:
    """Parse census CSV text into person rows, preserving file order."""

    if not text or not text.strip():
        raise ParseError("census file is empty")

    try:
        dataframe = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise ParseError(f"census file is not valid CSV: {exc}") from exc

    dataframe = _normalise_columns(dataframe)
    missing = [col for col in CENSUS_COLUMNS if col not in dataframe.columns]
    if missing:
        raise ParseError(f"census file is missing columns: {', '.join(missing)}")

    rows: list[PersonRow] = []
    # line 1 is the header
    for line_no, record in enumerate(dataframe.to_dict(orient="records"), start=2):
        values = {col: _cell(record.get(col)) for col in CENSUS_COLUMNS}
        try:
            blank = [col for col, value in values.items() if col != "dob" and not value]
            if blank:
                raise ValueError(f"missing values for {', '.join(blank)}")
            dob = _parse_dob(values.pop("dob"))
            rows.append(PersonRow(dob=dob, **values))
        except (ValueError, ValidationError) as exc:
            raise ParseError(f"line {line_no}: {exc}") from exc
    return rows
