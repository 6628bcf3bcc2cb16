"""Age banding and premium quote computation.

Every function here is pure: ages are computed against an explicit
``today`` (defaulting to the current date) and returned next to the rows
they belong to instead of being written onto them.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, localcontext
from fractions import Fraction
from pathlib import Path
from typing import Sequence

import yaml

from censusquote.core.errors import EmptyInputError
from censusquote.core.schema import PersonRow, QuoteRow, QuoteTable

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
CENT = Decimal("0.01")


class AgeBand(str, enum.Enum):
    BAND1 = "band1"
    BAND2 = "band2"
    BAND3 = "band3"

    @property
    def label(self) -> str:
        return BAND_LABELS[self]


BAND_LABELS: dict[AgeBand, str] = {
    AgeBand.BAND1: "< 40",
    AgeBand.BAND2: "40-59",
    AgeBand.BAND3: "60+",
}


@dataclass(frozen=True)
class RateTable:
    major: Decimal
    significant: Decimal
    small: Decimal
    age_tiers: dict[AgeBand, Decimal]

    def base_rates(self, band: AgeBand) -> tuple[Decimal, Decimal, Decimal]:
        """Return the (small, significant, major) unit prices for ``band``."""

        tier = self.age_tiers[band]
        return self.small * tier, self.significant * tier, self.major * tier


def load_rate_table(path: Path | None = None) -> RateTable:
    path = path or CONFIG_DIR / "rates.yaml"
    data: dict = {}
    if path.exists():
        with path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}

    base = data.get("base") or {}
    tiers = data.get("age_tier_multipliers") or {}
    major = Decimal(str(base.get("major", 3)))
    return RateTable(
        major=major,
        significant=major * Decimal(str(base.get("significant_factor", 3))),
        small=major * Decimal(str(base.get("small_factor", 5))),
        age_tiers={
            AgeBand.BAND1: Decimal(str(tiers.get("band1", 1))),
            AgeBand.BAND2: Decimal(str(tiers.get("band2", 3))),
            AgeBand.BAND3: Decimal(str(tiers.get("band3", 6))),
        },
    )


RATES = load_rate_table()


def age_on(dob: date, today: date) -> int:
    """Whole years elapsed between ``dob`` and ``today``, never negative."""

    years = today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))
    return max(years, 0)


def age_band(age: int) -> AgeBand:
    if age < 40:
        return AgeBand.BAND1
    if age < 60:
        return AgeBand.BAND2
    return AgeBand.BAND3


@dataclass(frozen=True)
class AgedRow:
    row: PersonRow
    age: int
    band: AgeBand


@dataclass(frozen=True)
class AgeBandStats:
    counts: dict[AgeBand, int]
    total: int

    def fraction(self, band: AgeBand) -> float:
        return self.counts[band] / self.total

    @property
    def band1(self) -> float:
        return self.fraction(AgeBand.BAND1)

    @property
    def band2(self) -> float:
        return self.fraction(AgeBand.BAND2)

    @property
    def band3(self) -> float:
        return self.fraction(AgeBand.BAND3)

    def as_dict(self) -> dict[str, float]:
        return {band.value: self.fraction(band) for band in AgeBand}


@dataclass(frozen=True)
class RateMultiplier:
    band1: Fraction
    band2: Fraction
    band3: Fraction

    def for_band(self, band: AgeBand) -> Fraction:
        return getattr(self, band.value)


def compute_age_band_stats(
    rows: Sequence[PersonRow], today: date | None = None
) -> tuple[AgeBandStats, list[AgedRow]]:
    """Count rows per age band and pair every row with its computed age."""

    if not rows:
        raise EmptyInputError("no census rows to quote")

    today = today or date.today()
    counts = {band: 0 for band in AgeBand}
    aged: list[AgedRow] = []
    for row in rows:
        age = age_on(row.dob, today)
        band = age_band(age)
        counts[band] += 1
        aged.append(AgedRow(row=row, age=age, band=band))
    return AgeBandStats(counts=counts, total=len(rows)), aged


def multipliers_from_stats(stats: AgeBandStats) -> RateMultiplier:
    values = {band.value: 1 + Fraction(stats.counts[band], stats.total * 3) for band in AgeBand}
    return RateMultiplier(**values)


def compute_multipliers(rows: Sequence[PersonRow], today: date | None = None) -> RateMultiplier:
    stats, _ = compute_age_band_stats(rows, today)
    return multipliers_from_stats(stats)


def _quantize(value: Fraction) -> str:
    # enough digits to settle half-cent ties on repeating fractions
    with localcontext() as ctx:
        ctx.prec = 60
        exact = Decimal(value.numerator) / Decimal(value.denominator)
    return str(exact.quantize(CENT, rounding=ROUND_HALF_UP))


def quote_from_stats(stats: AgeBandStats, rates: RateTable | None = None) -> QuoteTable:
    rates = rates or RATES
    multipliers = multipliers_from_stats(stats)
    entries: dict[str, QuoteRow] = {}
    for band in AgeBand:
        small, significant, major = rates.base_rates(band)
        multiplier = multipliers.for_band(band)
        entries[band.value] = QuoteRow(
            age_range=band.label,
            small=_quantize(Fraction(small) * multiplier),
            significant=_quantize(Fraction(significant) * multiplier),
            major=_quantize(Fraction(major) * multiplier),
        )
    return QuoteTable(**entries)


def compute_quote(
    rows: Sequence[PersonRow],
    today: date | None = None,
    rates: RateTable | None = None,
) -> QuoteTable:
    stats, _ = compute_age_band_stats(rows, today)
    return quote_from_stats(stats, rates)


def quote_as_text(table: QuoteTable) -> str:
    lines = [f"{'Age Range':<10}{'Small':>10}{'Significant':>13}{'Major':>10}"]
    for row in table.rows():
        lines.append(f"{row.age_range:<10}{row.small:>10}{row.significant:>13}{row.major:>10}")
    return "\n".join(lines)
