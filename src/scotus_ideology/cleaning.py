"""Load, clean, and join the SCDB vote table and the per-term ideology scores.

Both inputs are projected down to the columns the pipeline needs and renamed
to snake_case (see config.VOTE_COLUMNS / config.SCORE_COLUMNS). Vote rows with
an unknown direction (missing, or SCDB code 3 "unspecifiable") are excluded;
any other code outside {1, 2} is a data error and raises.

The join is an inner join on (term, justice_id). Justice-terms that exist in
only one source are dropped without raising; summarize_join() reports how
many rows each side lost.
"""

from __future__ import annotations

from pathlib import Path

import polars as pl

from scotus_ideology.config import (
    CONSERVATIVE,
    JOIN_KEYS,
    LIBERAL,
    SCORE_COLUMNS,
    UNSPECIFIABLE,
    VOTE_COLUMNS,
)


class SchemaError(ValueError):
    """An input table is missing required columns."""


class DirectionCodeError(ValueError):
    """A direction column holds a code other than conservative (1) or liberal (2)."""

    def __init__(self, column: str, codes: list) -> None:
        self.column = column
        self.codes = codes
        super().__init__(
            f"Unexpected direction codes in {column!r}: {codes} "
            f"(expected {CONSERVATIVE}=conservative or {LIBERAL}=liberal)"
        )


def _require_columns(df: pl.DataFrame, required: dict[str, str], table: str) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise SchemaError(f"{table} table is missing required columns: {missing}")


def _read_csv(path: Path, required: dict[str, str], table: str) -> pl.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{table} CSV not found: {path}")
    df = pl.read_csv(path, infer_schema_length=None, encoding="utf8-lossy")
    _require_columns(df, required, table)
    return df


# ── Loading ──────────────────────────────────────────────────────────────────


def load_votes(path: Path) -> pl.DataFrame:
    """Load the justice-centered SCDB CSV (raw column names)."""
    return _read_csv(path, VOTE_COLUMNS, "votes")


def load_scores(path: Path) -> pl.DataFrame:
    """Load the per-term ideology score CSV (raw column names)."""
    return _read_csv(path, SCORE_COLUMNS, "scores")


# ── Cleaning ─────────────────────────────────────────────────────────────────


def recode_direction(directions: pl.Series) -> pl.Series:
    """Recode direction codes to a liberal indicator: 1 -> 0, 2 -> 1.

    Nulls stay null. Any other non-null code raises DirectionCodeError.
    """
    present = directions.drop_nulls()
    bad = present.filter(~present.is_in([CONSERVATIVE, LIBERAL]))
    if bad.len() > 0:
        raise DirectionCodeError(directions.name, sorted(bad.unique().to_list()))
    return (directions == LIBERAL).cast(pl.Int8)


def _known_direction(col: str) -> pl.Expr:
    return pl.col(col).is_not_null() & (pl.col(col) != UNSPECIFIABLE)


def clean_votes(raw: pl.DataFrame) -> pl.DataFrame:
    """Project, rename, and filter the raw SCDB votes.

    Returns one row per justice vote with both directions in {1, 2} plus the
    recoded `court_liberal` / `justice_liberal` indicator columns.
    """
    _require_columns(raw, VOTE_COLUMNS, "votes")
    votes = raw.select([pl.col(src).alias(dst) for src, dst in VOTE_COLUMNS.items()])
    votes = votes.with_columns(
        pl.col("case_id").cast(pl.Utf8),
        pl.col("term").cast(pl.Int64),
        pl.col("chief").cast(pl.Utf8),
        pl.col("justice_id").cast(pl.Int64),
        pl.col("justice_name").cast(pl.Utf8),
        pl.col("issue_area").cast(pl.Int64),
        pl.col("court_direction").cast(pl.Int64),
        pl.col("justice_direction").cast(pl.Int64),
    )

    votes = votes.filter(
        _known_direction("justice_direction") & _known_direction("court_direction")
    )

    return votes.with_columns(
        recode_direction(votes["court_direction"]).alias("court_liberal"),
        recode_direction(votes["justice_direction"]).alias("justice_liberal"),
    )


def clean_scores(raw: pl.DataFrame) -> pl.DataFrame:
    """Project and rename the ideology scores; one row per (term, justice_id)."""
    _require_columns(raw, SCORE_COLUMNS, "scores")
    scores = raw.select([pl.col(src).alias(dst) for src, dst in SCORE_COLUMNS.items()])
    return (
        scores.with_columns(
            pl.col("term").cast(pl.Int64),
            pl.col("justice_id").cast(pl.Int64),
            pl.col("score_mean").cast(pl.Float64),
            pl.col("score_sd").cast(pl.Float64),
        )
        .drop_nulls(subset=["score_mean"])
        .unique(subset=JOIN_KEYS, keep="first", maintain_order=True)
    )


# ── Join ─────────────────────────────────────────────────────────────────────


def join_votes_scores(votes: pl.DataFrame, scores: pl.DataFrame) -> pl.DataFrame:
    """Inner join on (term, justice_id); unmatched rows on either side are dropped."""
    return votes.join(scores, on=JOIN_KEYS, how="inner")


def summarize_join(votes: pl.DataFrame, scores: pl.DataFrame, joined: pl.DataFrame) -> dict:
    """Count what the inner join discarded on each side."""
    vote_keys = votes.select(JOIN_KEYS).unique()
    score_keys = scores.select(JOIN_KEYS).unique()
    votes_only = vote_keys.join(score_keys, on=JOIN_KEYS, how="anti")
    scores_only = score_keys.join(vote_keys, on=JOIN_KEYS, how="anti")

    return {
        "vote_rows": votes.height,
        "score_rows": scores.height,
        "joined_rows": joined.height,
        "vote_rows_dropped": votes.height - joined.height,
        "justice_terms_votes_only": votes_only.height,
        "justice_terms_scores_only": scores_only.height,
        "justices_joined": joined["justice_id"].n_unique() if joined.height else 0,
        "terms_joined": joined["term"].n_unique() if joined.height else 0,
    }


def load_and_join(
    votes_path: Path, scores_path: Path
) -> tuple[pl.DataFrame, pl.DataFrame, pl.DataFrame]:
    """Convenience: load + clean both tables and join them.

    Returns (clean_votes, clean_scores, joined).
    """
    votes = clean_votes(load_votes(votes_path))
    scores = clean_scores(load_scores(scores_path))
    return votes, scores, join_votes_scores(votes, scores)
