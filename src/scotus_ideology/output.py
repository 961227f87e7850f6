"""CSV output for the cleaned, joined vote table."""

import csv
from dataclasses import asdict, fields
from pathlib import Path

import polars as pl

from scotus_ideology.config import JOINED_FILE
from scotus_ideology.models import JoinedVote


def joined_records(joined: pl.DataFrame) -> list[JoinedVote]:
    """Convert a joined polars frame into JoinedVote records."""
    names = [fld.name for fld in fields(JoinedVote)]
    return [JoinedVote(**row) for row in joined.select(names).iter_rows(named=True)]


def save_joined_csv(output_dir: Path, joined: pl.DataFrame) -> Path:
    """Write the joined table to <output_dir>/joined_votes.csv."""
    print("\n" + "=" * 60)
    print("Saving CSV file...")
    print("=" * 60)

    output_dir.mkdir(parents=True, exist_ok=True)
    records = joined_records(joined)

    joined_file = output_dir / JOINED_FILE
    with open(joined_file, "w", newline="", encoding="utf-8") as f:
        fieldnames = [fld.name for fld in fields(JoinedVote)]
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for rec in records:
            writer.writerow(asdict(rec))
    print(f"  {joined_file} ({len(records)} rows)")
    return joined_file
