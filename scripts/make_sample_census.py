#!/usr/bin/env python
from __future__ import annotations

import argparse
import random
from datetime import date, timedelta
from pathlib import Path

from censusquote.core.csvio import write_records_to_csv

FIRST_NAMES = ["Ava", "Ben", "Chloe", "Dev", "Elena", "Farah", "Gus", "Hana", "Ivan", "June"]
LAST_NAMES = ["Alvarez", "Brooks", "Chen", "Dubois", "Evans", "Fischer", "Garcia", "Haddad"]
STATES = ["CA", "NY", "TX", "WA", "FL", "IL", "CO", "GA"]


def build_rows(count: int, today: date, rng: random.Random) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for index in range(count):
        first = rng.choice(FIRST_NAMES)
        last = rng.choice(LAST_NAMES)
        dob = today - timedelta(days=rng.randint(18 * 365, 80 * 365))
        rows.append(
            {
                "first_name": first,
                "last_name": last,
                "email": f"{first}.{last}.{index}@example.com".lower(),
                "gender": rng.choice(["F", "M", "X"]),
                "dob": dob.isoformat(),
                "state": rng.choice(STATES),
            }
        )
    return rows


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample census CSV")
    parser.add_argument("--rows", type=int, default=25, help="number of covered persons")
    parser.add_argument("--output", required=True, help="output file path (.csv)")
    parser.add_argument("--seed", type=int, default=None, help="random seed for repeatable files")
    args = parser.parse_args()

    rows = build_rows(args.rows, date.today(), random.Random(args.seed))
    output = write_records_to_csv(Path(args.output), rows)
    print(f"census CSV with {len(rows)} rows written to {output}")


if __name__ == "__main__":
    main()
