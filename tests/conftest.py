"""Shared synthetic SCDB fixtures.

16 justices × 20 terms. Half the justices lean conservative (score around +1),
half liberal (around -1). Each justice-term casts 3 votes in each of issue
areas 1-12, agreeing with the justice's leaning 65% of the time; about 15% of
justice-term-areas have no votes at all. Every 10th vote has a missing or
unspecifiable direction, and the score table includes one justice-term with no
votes and omits one justice-term that has votes.
"""

from __future__ import annotations

import numpy as np
import polars as pl
import pytest

RANDOM_SEED = 42
N_JUSTICES = 16
TERMS = list(range(1990, 2010))
AGREE_PROB = 0.65


def _leaning(justice: int) -> int:
    return 1 if justice % 2 == 0 else -1


def make_raw_votes(seed: int = RANDOM_SEED) -> pl.DataFrame:
    """Raw SCDB-style vote table with SCDB column names."""
    rng = np.random.default_rng(seed)
    rows = []
    n = 0
    for term in TERMS:
        for justice in range(1, N_JUSTICES + 1):
            conservative = _leaning(justice) > 0
            for area in range(1, 13):
                if rng.random() < 0.15:
                    continue
                for k in range(3):
                    agrees = rng.random() < AGREE_PROB
                    is_con = conservative == agrees
                    direction: int | None = 1 if is_con else 2
                    n += 1
                    if n % 10 == 0:
                        direction = None if n % 20 == 0 else 3
                    rows.append(
                        {
                            "caseId": f"{term}-{area:02d}{k}",
                            "docketId": f"{term}-{area:02d}{k}-01",
                            "term": term,
                            "chief": "Rehnquist",
                            "justice": justice,
                            "justiceName": f"J{justice:02d}",
                            "issueArea": area,
                            "decisionDirection": 1 if k % 2 == 0 else 2,
                            "direction": direction,
                            "majority": 2,
                        }
                    )
    return pl.DataFrame(rows)


def make_raw_scores(seed: int = RANDOM_SEED) -> pl.DataFrame:
    """Per-term ideology scores with MQ column names."""
    rng = np.random.default_rng(seed + 1)
    rows = []
    for term in TERMS:
        for justice in range(1, N_JUSTICES + 1):
            if (term, justice) == (1990, 1):
                continue  # votes without a score
            rows.append(
                {
                    "term": term,
                    "justice": justice,
                    "justiceName": f"J{justice:02d}",
                    "post_mn": _leaning(justice) * 1.5 + rng.normal(0, 0.3),
                    "post_sd": 0.25,
                }
            )
    # score without votes
    rows.append({"term": 1989, "justice": 99, "justiceName": "J99", "post_mn": 0.4, "post_sd": 0.2})
    return pl.DataFrame(rows)


@pytest.fixture(scope="session")
def raw_votes() -> pl.DataFrame:
    return make_raw_votes()


@pytest.fixture(scope="session")
def raw_scores() -> pl.DataFrame:
    return make_raw_scores()


@pytest.fixture
def csv_dir(tmp_path, raw_votes, raw_scores):
    """Directory holding both synthetic CSVs under their default names."""
    raw_votes.write_csv(tmp_path / "SCDB_justice.csv")
    raw_scores.write_csv(tmp_path / "mq_scores.csv")
    return tmp_path
