from datetime import date
from fractions import Fraction

import pytest

from censusquote.core.errors import EmptyInputError
from censusquote.core.quote import (
    AgeBand,
    age_band,
    age_on,
    compute_age_band_stats,
    compute_multipliers,
    compute_quote,
    load_rate_table,
    quote_as_text,
)
from censusquote.core.schema import PersonRow

TODAY = date(2026, 10, 18)


def _person(dob: date, **overrides) -> PersonRow:
    fields = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "gender": "F",
        "dob": dob,
        "state": "CA",
    }
    fields.update(overrides)
    return PersonRow(**fields)


def _aged(*ages: int) -> list[PersonRow]:
    # birthdays in January have already passed on TODAY
    return [_person(date(TODAY.year - age, 1, 15)) for age in ages]


def _tiers(table) -> list[tuple[str, str, str, str]]:
    return [(row.age_range, row.small, row.significant, row.major) for row in table.rows()]


def test_one_person_per_band_quote():
    rows = _aged(25, 45, 65)

    stats, aged = compute_age_band_stats(rows, TODAY)
    assert stats.counts == {AgeBand.BAND1: 1, AgeBand.BAND2: 1, AgeBand.BAND3: 1}
    assert [item.age for item in aged] == [25, 45, 65]
    assert [item.band for item in aged] == [AgeBand.BAND1, AgeBand.BAND2, AgeBand.BAND3]

    multipliers = compute_multipliers(rows, TODAY)
    assert multipliers.band1 == multipliers.band2 == multipliers.band3 == Fraction(10, 9)

    quote = compute_quote(rows, TODAY)
    assert quote.band1.small == "16.67"
    assert _tiers(quote) == [
        ("< 40", "16.67", "10.00", "3.33"),
        ("40-59", "50.00", "30.00", "10.00"),
        ("60+", "100.00", "60.00", "20.00"),
    ]


def test_single_row_takes_whole_band():
    rows = _aged(30)

    multipliers = compute_multipliers(rows, TODAY)
    assert multipliers.band1 == Fraction(4, 3)
    assert multipliers.band2 == 1
    assert multipliers.band3 == 1

    assert _tiers(compute_quote(rows, TODAY)) == [
        ("< 40", "20.00", "12.00", "4.00"),
        ("40-59", "45.00", "27.00", "9.00"),
        ("60+", "90.00", "54.00", "18.00"),
    ]


def test_half_cent_rounds_away_from_zero():
    rows = _aged(20, 41, 42, 43, 44, 45, 46, 47)

    assert _tiers(compute_quote(rows, TODAY)) == [
        ("< 40", "15.63", "9.38", "3.13"),
        ("40-59", "58.13", "34.88", "11.63"),
        ("60+", "90.00", "54.00", "18.00"),
    ]


def test_empty_rows_rejected():
    with pytest.raises(EmptyInputError):
        compute_age_band_stats([], TODAY)
    with pytest.raises(EmptyInputError):
        compute_quote([], TODAY)


@pytest.mark.parametrize(
    ("dob", "today", "expected"),
    [
        (date(2000, 10, 19), date(2026, 10, 18), 25),
        (date(2000, 10, 18), date(2026, 10, 18), 26),
        (date(2000, 2, 29), date(2026, 2, 28), 25),
        (date(2000, 2, 29), date(2026, 3, 1), 26),
        (date(2026, 10, 18), date(2026, 10, 18), 0),
        (date(2030, 1, 1), date(2026, 10, 18), 0),
    ],
)
def test_age_is_truncated_whole_years(dob, today, expected):
    assert age_on(dob, today) == expected


@pytest.mark.parametrize(
    ("age", "band"),
    [(0, AgeBand.BAND1), (39, AgeBand.BAND1), (40, AgeBand.BAND2), (59, AgeBand.BAND2), (60, AgeBand.BAND3), (101, AgeBand.BAND3)],
)
def test_band_thresholds(age, band):
    assert age_band(age) == band


def test_rows_are_not_annotated():
    rows = _aged(50)
    before = rows[0].model_dump()

    compute_quote(rows, TODAY)

    assert rows[0].model_dump() == before
    assert not hasattr(rows[0], "age")


@pytest.mark.parametrize(
    "ages",
    [
        [25],
        [61, 62],
        [18, 39, 40, 59, 60, 99],
        [33] * 7 + [48] * 2 + [71],
        list(range(18, 90)),
    ],
)
def test_distribution_properties(ages):
    rows = _aged(*ages)

    stats, aged = compute_age_band_stats(rows, TODAY)
    assert abs(stats.band1 + stats.band2 + stats.band3 - 1.0) < 1e-9
    for item in aged:
        assert isinstance(item.age, int) and item.age >= 0
        assert item.band == age_band(item.age)

    multipliers = compute_multipliers(rows, TODAY)
    for band in AgeBand:
        assert 1 <= multipliers.for_band(band) <= 1 + Fraction(1, 3)

    quote = compute_quote(rows, TODAY)
    for tier in ("small", "significant", "major"):
        values = [float(getattr(row, tier)) for row in quote.rows()]
        assert values == sorted(values)
        assert all(len(value.split(".")[1]) == 2 for value in (getattr(row, tier) for row in quote.rows()))


def test_rate_table_loaded_from_yaml(tmp_path):
    config = tmp_path / "rates.yaml"
    config.write_text(
        "base:\n  major: 4\n  significant_factor: 2\n  small_factor: 4\n"
        "age_tier_multipliers:\n  band1: 1\n  band2: 2\n  band3: 3\n",
        encoding="utf-8",
    )
    rates = load_rate_table(config)

    quote = compute_quote(_aged(30), TODAY, rates=rates)
    assert _tiers(quote)[0] == ("< 40", "21.33", "10.67", "5.33")
    assert _tiers(quote)[2] == ("60+", "48.00", "24.00", "12.00")


def test_missing_rate_file_uses_builtin_rates(tmp_path):
    rates = load_rate_table(tmp_path / "absent.yaml")
    assert rates.base_rates(AgeBand.BAND1) == (15, 9, 3)
    assert rates.base_rates(AgeBand.BAND3) == (90, 54, 18)


def test_quote_as_text_lists_every_band():
    text = quote_as_text(compute_quote(_aged(25, 45, 65), TODAY))
    lines = text.splitlines()
    assert lines[0].split() == ["Age", "Range", "Small", "Significant", "Major"]
    assert lines[1].split() == ["<", "40", "16.67", "10.00", "3.33"]
    assert lines[3].split() == ["60+", "100.00", "60.00", "20.00"]
