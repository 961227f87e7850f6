"""
Supreme Court — Justice Ideology from Issue-Area Voting

Joins the justice-centered SCDB vote table with per-term ideology scores,
reduces each justice-term to its majority voting direction in 11 issue areas,
and fits a binomial regression predicting whether the justice's score for that
term is conservative. A reduced 8-area model is compared against the full
model with a likelihood-ratio test; the full model is evaluated on a held-out
split and exposed through a small predictor form.

Usage:
  uv run python analysis/ideology.py [--data-dir .] [--seed 100] [--train-frac 0.70]
  uv run python analysis/ideology.py --predict "c,c,l,l,c,c,l,c,c,l,c"
  uv run python analysis/ideology.py --interactive

Outputs (in results/<dataset>/ideology/<date>/):
  - data/:   Parquet files (joined votes, majority directions, feature matrix, splits,
             held-out scores, coefficients)
  - plots/:  PNG visualizations (EDA, label balance, held-out probabilities, coefficients,
             form predictions)
  - filtering_manifest.json, run_info.json, run_log.txt
  - ideology_report.html
"""

from __future__ import annotations

import argparse
import json
import warnings
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import polars as pl
import seaborn as sns
import statsmodels.api as sm
from scipy.stats import chi2
from sklearn.metrics import accuracy_score
from sklearn.model_selection import train_test_split

from scotus_ideology.cleaning import (
    clean_scores,
    clean_votes,
    join_votes_scores,
    load_scores,
    load_votes,
    summarize_join,
)
from scotus_ideology.config import (
    ABSENT,
    CONSERVATIVE,
    DIRECTION_LABELS,
    FEATURE_AREAS,
    ISSUE_AREAS,
    LIBERAL,
    REDUCED_AREAS,
    SCORES_FILE,
    VOTES_FILE,
)

try:
    from analysis.run_context import RunContext
except ModuleNotFoundError:
    from run_context import RunContext

try:
    from analysis.ideology_report import build_ideology_report
except ModuleNotFoundError:
    from ideology_report import build_ideology_report  # type: ignore[no-redef]


# ── Constants ────────────────────────────────────────────────────────────────

RANDOM_SEED = 100
TRAIN_FRAC = 0.70
THRESHOLD = 0.50
LABEL = "conservative"
KEY_COLS = ["justice_id", "term"]
DIRECTION_COLORS = {"conservative": "#E81B23", "liberal": "#0015BC"}

IDEOLOGY_PRIMER = """\
# Justice Ideology from Issue-Area Voting

## Purpose

Tests how well a justice's per-issue-area voting direction in a term predicts
whether that justice's ideology score for the term is conservative.

## Method

1. **Clean & join** — Project the SCDB justice table down to case, term, chief,
   justice, issue area, and the court/justice vote directions. Rows with an
   unknown justice or court direction are dropped. Inner join with the
   per-term ideology scores on (term, justice).
2. **Majority direction** — For every (justice, term, issue area), the share of
   liberal votes. The cell is 1 (conservative) or 2 (liberal) when one side
   holds a strict majority; exact 50/50 ties are left empty.
3. **Feature matrix** — Pivot 11 retained issue areas into columns, fill empty
   cells with 0. Label = 1 when the term's score_mean > 0.
4. **Split & balance** — Stratified 70/30 split (seed 100), then the training
   set's majority class is downsampled to the minority count.
5. **Model** — Binomial GLM (logit link) on all 11 areas, compared with an
   8-area nested model by a likelihood-ratio (chi-squared) test.
6. **Evaluate** — Held-out accuracy at a 0.50 probability threshold.
7. **Predictor form** — Any 11-area direction vector maps to P(conservative).

## Inputs

| File | Contents |
|------|----------|
| `SCDB_justice.csv` | Justice-centered Supreme Court Database (one row per vote) |
| `mq_scores.csv` | Per-term ideology scores (`post_mn`, `post_sd`) |

## Outputs

| File | Contents |
|------|----------|
| `joined_votes.parquet` | Cleaned votes joined with scores |
| `majority_directions.parquet` | Per justice-term-area vote shares and majority direction |
| `feature_matrix.parquet` | One row per justice-term, 11 area columns + label |
| `train.parquet` / `test.parquet` | Balanced training rows / held-out rows |
| `holdout_scores.parquet` | Held-out predicted probabilities and predictions |
| `coefficients.parquet` | Full-model coefficient table |
| `ideology_report.html` | Self-contained HTML report |

## Interpretation Guide

- Feature values are categorical codes treated as numeric: 0 = no majority,
  1 = conservative, 2 = liberal. A negative coefficient means a liberal
  majority in that area lowers P(conservative).
- The LR test asks whether the three extra areas (attorneys, unions,
  federal taxation) improve fit beyond the 8-area model.
- Accuracy is the only reported metric; compare it with the 50% rate of
  the balanced training set.

## Caveats

- Ideology scores are themselves estimated from votes, so this is a
  consistency check more than an independent prediction.
- The held-out set is small (one row per justice-term) and accuracy moves by
  whole rows; rerunning with another seed changes it.
- An earlier write-up quoted roughly 90% held-out accuracy. That figure is
  not reproduced here; the report cites the value computed by this run.
"""


# ── Helpers ──────────────────────────────────────────────────────────────────


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SCOTUS Justice Ideology Model")
    parser.add_argument("--dataset", default="scdb", help="Label for the results directory")
    parser.add_argument("--data-dir", default=".", help="Directory holding the input CSVs")
    parser.add_argument("--votes-file", default=VOTES_FILE)
    parser.add_argument("--scores-file", default=SCORES_FILE)
    parser.add_argument("--seed", type=int, default=RANDOM_SEED)
    parser.add_argument("--train-frac", type=float, default=TRAIN_FRAC)
    parser.add_argument(
        "--predict",
        action="append",
        default=[],
        metavar="SPEC",
        help=(
            "Predictor form input: 11 comma-separated directions in feature order "
            "(c/l), or area=direction pairs. Repeatable."
        ),
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Prompt for each issue area's direction after fitting",
    )
    args = parser.parse_args(argv)

    # Reject malformed form requests before any output is written
    for text in args.predict:
        try:
            normalize_choices(parse_choices(text))
        except ValueError as exc:
            parser.error(f"--predict {text!r}: {exc}")
    return args


def print_header(title: str) -> None:
    width = 80
    print(f"\n{'=' * width}")
    print(f"  {title}")
    print(f"{'=' * width}")


def save_fig(fig: plt.Figure, path: Path, dpi: int = 150) -> None:
    fig.savefig(path, dpi=dpi, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    print(f"  Saved: {path.name}")


# ── Phase 1: Load & Join ─────────────────────────────────────────────────────


def load_data(votes_path: Path, scores_path: Path) -> dict[str, pl.DataFrame]:
    """Load both CSVs, clean them, and inner-join on (term, justice_id)."""
    raw_votes = load_votes(votes_path)
    raw_scores = load_scores(scores_path)
    votes = clean_votes(raw_votes)
    scores = clean_scores(raw_scores)
    return {
        "raw_votes": raw_votes,
        "raw_scores": raw_scores,
        "votes": votes,
        "scores": scores,
        "joined": join_votes_scores(votes, scores),
    }


# ── Phase 2: Feature Construction ────────────────────────────────────────────


def ideology_label() -> pl.Expr:
    """1 = conservative term (score_mean > 0); a score of exactly 0 is liberal."""
    return (pl.col("score_mean") > 0).cast(pl.Int64).alias(LABEL)


def compute_majority_directions(joined: pl.DataFrame) -> pl.DataFrame:
    """Majority voting direction per (justice, term, issue area).

    Returns one row per group with n_votes, liberal_share, majority_share
    (share of votes cast in the majority direction), and majority_direction
    (1 = conservative, 2 = liberal, null on an exact 50/50 tie).
    """
    return (
        joined.filter(pl.col("issue_area").is_in(list(ISSUE_AREAS)))
        .group_by("justice_id", "term", "issue_area")
        .agg(
            pl.len().alias("n_votes"),
            pl.col("justice_liberal").mean().alias("liberal_share"),
        )
        .with_columns(
            pl.col("issue_area").replace_strict(ISSUE_AREAS, return_dtype=pl.Utf8).alias("area"),
            pl.max_horizontal(pl.col("liberal_share"), 1 - pl.col("liberal_share")).alias(
                "majority_share"
            ),
            pl.when(pl.col("liberal_share") > 0.5)
            .then(pl.lit(LIBERAL))
            .when(pl.col("liberal_share") < 0.5)
            .then(pl.lit(CONSERVATIVE))
            .otherwise(None)
            .cast(pl.Int64)
            .alias("majority_direction"),
        )
        .sort("justice_id", "term", "issue_area")
    )


def build_feature_matrix(
    joined: pl.DataFrame,
    areas: list[str] = FEATURE_AREAS,
) -> pl.DataFrame:
    """Build the per-(justice, term) feature matrix.

    Every justice-term in the joined table gets a row. Area columns appear in
    the order given; each holds 1, 2, or 0 (no votes in that area, or a tie).
    """
    majority = compute_majority_directions(joined)
    cells = majority.filter(
        pl.col("area").is_in(areas) & pl.col("majority_direction").is_not_null()
    )

    keys = (
        joined.group_by(KEY_COLS)
        .agg(pl.col("justice_name").first(), pl.col("score_mean").first())
        .sort(KEY_COLS)
    )

    if cells.height > 0:
        wide = cells.pivot(on="area", index=KEY_COLS, values="majority_direction")
        features = keys.join(wide, on=KEY_COLS, how="left")
    else:
        features = keys

    missing = [a for a in areas if a not in features.columns]
    features = features.with_columns([pl.lit(None, dtype=pl.Int64).alias(a) for a in missing])

    features = features.with_columns(
        [pl.col(a).fill_null(ABSENT).cast(pl.Int64) for a in areas]
    ).with_columns(ideology_label())

    return features.select([*KEY_COLS, "justice_name", "score_mean", *areas, LABEL])


# ── Phase 3: Split & Balance ─────────────────────────────────────────────────


def _take_rows(df: pl.DataFrame, idx: np.ndarray) -> pl.DataFrame:
    keep = np.sort(idx).tolist()
    return df.with_row_index("_row").filter(pl.col("_row").is_in(keep)).drop("_row")


def split_train_test(
    features: pl.DataFrame,
    seed: int = RANDOM_SEED,
    train_frac: float = TRAIN_FRAC,
) -> tuple[pl.DataFrame, pl.DataFrame]:
    """Stratified train/test partition; identical output for identical inputs."""
    idx = np.arange(features.height)
    train_idx, test_idx = train_test_split(
        idx,
        train_size=train_frac,
        random_state=seed,
        stratify=features[LABEL].to_numpy(),
    )
    return _take_rows(features, train_idx), _take_rows(features, test_idx)


def downsample(train: pl.DataFrame, seed: int = RANDOM_SEED) -> pl.DataFrame:
    """Downsample the majority class so both labels have the minority count."""
    counts = train.group_by(LABEL).len()
    if counts.height < 2:
        print(f"  WARNING: training set has a single class ({counts[LABEL].to_list()})")
        return train

    n_min = int(counts["len"].min())
    rng = np.random.default_rng(seed)
    parts = []
    for label in (0, 1):
        subset = train.filter(pl.col(LABEL) == label)
        chosen = rng.choice(subset.height, size=n_min, replace=False)
        parts.append(_take_rows(subset, chosen))

    return pl.concat(parts).sort(KEY_COLS)


# ── Phase 4: Model Fit & Comparison ──────────────────────────────────────────


@dataclass
class FittedModel:
    """A fitted binomial GLM plus the ordered feature columns it was fit on."""

    columns: list[str]
    result: object  # statsmodels GLMResults

    @property
    def llf(self) -> float:
        return float(self.result.llf)

    @property
    def aic(self) -> float:
        return float(self.result.aic)

    def predict_proba(self, df: pl.DataFrame) -> np.ndarray:
        return np.asarray(self.result.predict(_design(df, self.columns)))


def _design(df: pl.DataFrame, columns: list[str]) -> np.ndarray:
    X = df.select(columns).to_numpy().astype(np.float64)
    return sm.add_constant(X, has_constant="add")


def fit_logit(train: pl.DataFrame, columns: list[str]) -> FittedModel:
    """Fit a binomial GLM (logit link) with intercept on the given columns."""
    y = train[LABEL].to_numpy().astype(np.float64)
    model = sm.GLM(y, _design(train, columns), family=sm.families.Binomial())
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        result = model.fit()
    return FittedModel(columns=list(columns), result=result)


def likelihood_ratio_test(full: FittedModel, reduced: FittedModel) -> dict:
    """Chi-squared likelihood-ratio test of a reduced model nested in the full one."""
    if not set(reduced.columns) < set(full.columns):
        raise ValueError(
            f"Models are not nested: reduced columns {reduced.columns} "
            f"are not a strict subset of {full.columns}"
        )
    df_diff = len(full.columns) - len(reduced.columns)
    statistic = max(2.0 * (full.llf - reduced.llf), 0.0)
    return {
        "full_n_features": len(full.columns),
        "reduced_n_features": len(reduced.columns),
        "dropped": [c for c in full.columns if c not in reduced.columns],
        "llf_full": full.llf,
        "llf_reduced": reduced.llf,
        "aic_full": full.aic,
        "aic_reduced": reduced.aic,
        "statistic": statistic,
        "df": df_diff,
        "p_value": float(chi2.sf(statistic, df_diff)),
    }


def coefficient_table(model: FittedModel) -> pl.DataFrame:
    """Estimate, standard error, z, p, and 95% interval per term."""
    res = model.result
    ci = np.asarray(res.conf_int())
    return pl.DataFrame(
        {
            "term": ["intercept", *model.columns],
            "estimate": np.asarray(res.params, dtype=np.float64),
            "std_error": np.asarray(res.bse, dtype=np.float64),
            "z": np.asarray(res.tvalues, dtype=np.float64),
            "p_value": np.asarray(res.pvalues, dtype=np.float64),
            "ci_low": ci[:, 0].astype(np.float64),
            "ci_high": ci[:, 1].astype(np.float64),
        }
    )


# ── Phase 5: Evaluation ──────────────────────────────────────────────────────


def evaluate_holdout(
    model: FittedModel,
    test: pl.DataFrame,
    threshold: float = THRESHOLD,
) -> dict:
    """Threshold held-out probabilities and compute accuracy."""
    y = test[LABEL].to_numpy()
    prob = model.predict_proba(test)
    pred = (prob > threshold).astype(np.int64)

    scored = test.select([*KEY_COLS, "justice_name", "score_mean", LABEL]).with_columns(
        pl.Series("prob_conservative", prob),
        pl.Series("predicted", pred),
        pl.Series("correct", (pred == y).astype(np.int64)),
    )

    return {
        "accuracy": float(accuracy_score(y, pred)),
        "n_test": int(len(y)),
        "n_correct": int((pred == y).sum()),
        "threshold": threshold,
        "scored": scored,
    }


# ── Phase 6: Predictor Form ──────────────────────────────────────────────────

_CHOICE_ALIASES = {
    "c": CONSERVATIVE,
    "conservative": CONSERVATIVE,
    str(CONSERVATIVE): CONSERVATIVE,
    "l": LIBERAL,
    "liberal": LIBERAL,
    str(LIBERAL): LIBERAL,
}


def _normalize_choice(area: str, value: str | int) -> int:
    is_code = isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))
    if is_code and int(value) in (CONSERVATIVE, LIBERAL):
        return int(value)
    if isinstance(value, str) and value.strip().lower() in _CHOICE_ALIASES:
        return _CHOICE_ALIASES[value.strip().lower()]
    raise ValueError(f"{area}: expected 'conservative' or 'liberal', got {value!r}")


def normalize_choices(
    choices: Mapping[str, str | int],
    columns: list[str] = FEATURE_AREAS,
) -> dict[str, int]:
    """Validate a full form and map it to direction codes, in column order."""
    missing = [c for c in columns if c not in choices]
    extra = [c for c in choices if c not in columns]
    if missing or extra:
        raise ValueError(f"Choices must cover exactly {columns}; missing={missing}, extra={extra}")
    return {c: _normalize_choice(c, choices[c]) for c in columns}


def parse_choices(text: str, columns: list[str] = FEATURE_AREAS) -> dict[str, str]:
    """Parse form input: 'c,l,...' in column order, or 'area=direction,...'."""
    items = [part.strip() for part in text.split(",") if part.strip()]
    if not any("=" in item for item in items):
        if len(items) != len(columns):
            raise ValueError(f"Expected {len(columns)} directions, got {len(items)}")
        return dict(zip(columns, items))

    choices = {}
    for item in items:
        if "=" not in item:
            raise ValueError(f"Expected area=direction, got {item!r} (do not mix with positional)")
        area, value = (s.strip() for s in item.split("=", 1))
        if area in choices:
            raise ValueError(f"Area {area!r} given more than once")
        choices[area] = value
    return choices


def format_probability(prob: float) -> str:
    return f"Predicted probability of a conservative term: {prob:.1%}"


class IdeologyPredictor:
    """Maps one two-valued choice per issue area to P(conservative).

    Stateless over an already-fitted model: every call is independent.
    """

    def __init__(self, model: FittedModel) -> None:
        self.model = model
        self.columns = model.columns

    def encode(self, choices: Mapping[str, str | int]) -> pl.DataFrame:
        codes = normalize_choices(choices, self.columns)
        return pl.DataFrame({c: [code] for c, code in codes.items()})

    def predict_proba(self, choices: Mapping[str, str | int]) -> float:
        return float(self.model.predict_proba(self.encode(choices))[0])


def prompt_choices(
    columns: list[str],
    input_fn: Callable[[str], str] = input,
) -> dict[str, int]:
    """Ask for each area's direction in turn, re-asking on bad input."""
    choices = {}
    for area in columns:
        while True:
            answer = input_fn(f"  {area} [c/l]: ")
            try:
                choices[area] = _normalize_choice(area, answer)
                break
            except ValueError as exc:
                print(f"    {exc}")
    return choices


# ── Phase 7: Plots ───────────────────────────────────────────────────────────


def plot_ideology_over_time(joined: pl.DataFrame, out_path: Path) -> None:
    """score_mean by term, one line per justice."""
    per_term = joined.select("justice_name", "term", "score_mean").unique().sort("term")

    fig, ax = plt.subplots(figsize=(12, 6))
    for name in per_term["justice_name"].unique().sort().to_list():
        sub = per_term.filter(pl.col("justice_name") == name)
        ax.plot(sub["term"].to_numpy(), sub["score_mean"].to_numpy(), linewidth=1.2, alpha=0.8)
        last = sub.tail(1).row(0, named=True)
        ax.annotate(name, (last["term"], last["score_mean"]), fontsize=6, alpha=0.7)

    ax.axhline(0, color="black", linestyle="--", linewidth=1, alpha=0.5)
    ax.set_xlabel("Term", fontsize=12)
    ax.set_ylabel("Ideology score (positive = conservative)", fontsize=12)
    ax.set_title("Justice Ideology Scores by Term", fontsize=14)
    ax.grid(True, alpha=0.3)
    save_fig(fig, out_path)


def plot_liberal_share_heatmap(joined: pl.DataFrame, out_path: Path) -> None:
    """Heatmap: share of liberal votes by justice (rows) and issue area (columns)."""
    shares = (
        joined.filter(pl.col("issue_area").is_in(list(ISSUE_AREAS)))
        .group_by("justice_name", "issue_area")
        .agg(pl.col("justice_liberal").mean().alias("liberal_share"))
        .sort("issue_area")
        .with_columns(pl.col("issue_area").replace_strict(ISSUE_AREAS, return_dtype=pl.Utf8))
        .pivot(on="issue_area", index="justice_name", values="liberal_share")
        .sort("justice_name")
    )
    area_cols = [a for a in ISSUE_AREAS.values() if a in shares.columns]
    matrix = shares.select(area_cols).to_numpy().astype(np.float64)

    fig, ax = plt.subplots(figsize=(12, max(4, 0.3 * shares.height + 2)))
    sns.heatmap(
        matrix,
        ax=ax,
        cmap="RdBu",
        vmin=0,
        vmax=1,
        xticklabels=area_cols,
        yticklabels=shares["justice_name"].to_list(),
        cbar_kws={"label": "Liberal vote share"},
    )
    ax.set_title("Liberal Vote Share by Justice and Issue Area", fontsize=14)
    plt.setp(ax.get_xticklabels(), rotation=45, ha="right", fontsize=8)
    plt.setp(ax.get_yticklabels(), fontsize=7)
    save_fig(fig, out_path)


def plot_direction_by_area(joined: pl.DataFrame, out_path: Path) -> None:
    """Grouped bars: conservative vs liberal justice votes per issue area."""
    counts = (
        joined.filter(pl.col("issue_area").is_in(list(ISSUE_AREAS)))
        .group_by("issue_area", "justice_direction")
        .agg(pl.len())
    )
    areas = sorted(counts["issue_area"].unique().to_list())
    x = np.arange(len(areas))
    width = 0.4

    fig, ax = plt.subplots(figsize=(12, 5))
    for offset, code in [(-width / 2, CONSERVATIVE), (width / 2, LIBERAL)]:
        label = DIRECTION_LABELS[code]
        heights = []
        for area in areas:
            cell = counts.filter(
                (pl.col("issue_area") == area) & (pl.col("justice_direction") == code)
            )
            heights.append(int(cell["len"].sum()) if cell.height else 0)
        ax.bar(x + offset, heights, width, label=label, color=DIRECTION_COLORS[label])

    ax.set_xticks(x)
    ax.set_xticklabels([ISSUE_AREAS[a] for a in areas], rotation=45, ha="right")
    ax.set_ylabel("Justice votes")
    ax.set_title("Vote Direction by Issue Area")
    ax.legend()
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    save_fig(fig, out_path)


def plot_label_balance(train: pl.DataFrame, balanced: pl.DataFrame, out_path: Path) -> None:
    """Label counts in the training split before and after downsampling."""
    fig, axes = plt.subplots(1, 2, figsize=(10, 4), sharey=True)
    for ax, (title, df) in zip(axes, [("Before", train), ("After downsampling", balanced)]):
        n_lib = df.filter(pl.col(LABEL) == 0).height
        n_con = df.filter(pl.col(LABEL) == 1).height
        bars = ax.bar(
            ["liberal (0)", "conservative (1)"],
            [n_lib, n_con],
            color=[DIRECTION_COLORS["liberal"], DIRECTION_COLORS["conservative"]],
            alpha=0.85,
        )
        for bar, n in zip(bars, [n_lib, n_con]):
            x = bar.get_x() + bar.get_width() / 2
            ax.text(x, bar.get_height(), str(n), ha="center", va="bottom")
        ax.set_title(title)
        ax.grid(True, axis="y", alpha=0.3)
    axes[0].set_ylabel("Justice-terms")
    fig.suptitle("Training Label Balance", fontsize=14)
    fig.tight_layout()
    save_fig(fig, out_path)


def _plot_probability_strip(ax: plt.Axes, scored: pl.DataFrame, threshold: float) -> None:
    rng = np.random.default_rng(RANDOM_SEED)
    for label, name in [(0, "liberal"), (1, "conservative")]:
        sub = scored.filter(pl.col(LABEL) == label)
        jitter = rng.uniform(-0.15, 0.15, sub.height)
        ax.scatter(
            sub["prob_conservative"].to_numpy(),
            np.full(sub.height, label) + jitter,
            c=DIRECTION_COLORS[name],
            label=f"actual {name}",
            alpha=0.6,
            s=30,
            edgecolors="black",
            linewidths=0.3,
        )
    ax.axvline(
        threshold, color="black", linestyle="--", linewidth=1, label=f"threshold {threshold:.2f}"
    )
    ax.set_yticks([0, 1])
    ax.set_yticklabels(["liberal", "conservative"])
    ax.set_xlim(-0.02, 1.02)
    ax.set_xlabel("P(conservative)", fontsize=12)
    ax.grid(True, alpha=0.3)


def plot_holdout_probabilities(scored: pl.DataFrame, threshold: float, out_path: Path) -> None:
    """Held-out predicted probability by actual label, with the decision threshold."""
    fig, ax = plt.subplots(figsize=(10, 4))
    _plot_probability_strip(ax, scored, threshold)
    ax.set_title("Held-out Predictions", fontsize=14)
    ax.legend(fontsize=9, loc="center left")
    save_fig(fig, out_path)


def plot_form_prediction(
    scored: pl.DataFrame,
    prob: float,
    threshold: float,
    out_path: Path,
) -> None:
    """The form's scatter output: held-out predictions with the requested point."""
    fig, ax = plt.subplots(figsize=(10, 4))
    _plot_probability_strip(ax, scored, threshold)
    ax.scatter(
        [prob], [0.5], marker="*", s=400, c="#FFB000", edgecolors="black", label="your input"
    )
    ax.set_title(format_probability(prob), fontsize=13)
    ax.legend(fontsize=9, loc="center left")
    save_fig(fig, out_path)


def plot_coefficients(coefs: pl.DataFrame, out_path: Path) -> None:
    """Fitted coefficients with 95% intervals (intercept omitted)."""
    df = coefs.filter(pl.col("term") != "intercept")
    y = np.arange(df.height)
    est = df["estimate"].to_numpy()
    lo = est - df["ci_low"].to_numpy()
    hi = df["ci_high"].to_numpy() - est

    fig, ax = plt.subplots(figsize=(9, 6))
    ax.errorbar(est, y, xerr=[lo, hi], fmt="o", color="#2196F3", ecolor="#555", capsize=3)
    ax.axvline(0, color="black", linestyle="--", linewidth=1, alpha=0.5)
    ax.set_yticks(y)
    ax.set_yticklabels(df["term"].to_list(), fontsize=10)
    ax.invert_yaxis()
    ax.set_xlabel("Log-odds coefficient (per unit of direction code)", fontsize=11)
    ax.set_title("Full Model Coefficients (95% CI)", fontsize=14)
    ax.grid(True, axis="x", alpha=0.3)
    fig.tight_layout()
    save_fig(fig, out_path)


# ── Main ─────────────────────────────────────────────────────────────────────


def _answer_form(
    predictor: IdeologyPredictor,
    choices: Mapping[str, str | int],
    holdout: dict,
    plots_dir: Path,
    n: int,
) -> dict:
    prob = predictor.predict_proba(choices)
    print(f"  {format_probability(prob)}")
    plot_form_prediction(
        holdout["scored"],
        prob,
        holdout["threshold"],
        plots_dir / f"form_prediction_{n}.png",
    )
    row = {c: DIRECTION_LABELS[_normalize_choice(c, choices[c])] for c in predictor.columns}
    row["prob_conservative"] = prob
    return row


def main(
    argv: list[str] | None = None,
    input_fn: Callable[[str], str] = input,
) -> None:
    args = parse_args(argv)
    data_dir = Path(args.data_dir)
    votes_path = data_dir / args.votes_file
    scores_path = data_dir / args.scores_file

    with RunContext(
        dataset=args.dataset,
        analysis_name="ideology",
        params=vars(args),
        primer=IDEOLOGY_PRIMER,
    ) as ctx:
        # ── Phase 1: Load & Join ────────────────────────────────────────
        print_header("PHASE 1: LOAD, CLEAN & JOIN")

        data = load_data(votes_path, scores_path)
        joined = data["joined"]
        join_summary = summarize_join(data["votes"], data["scores"], joined)
        print(f"  Raw votes:     {data['raw_votes'].height:,} rows")
        print(f"  Clean votes:   {data['votes'].height:,} rows")
        print(f"  Scores:        {data['scores'].height:,} rows")
        print(f"  Joined:        {joined.height:,} rows")
        print(f"  Justice-terms only in votes:  {join_summary['justice_terms_votes_only']}")
        print(f"  Justice-terms only in scores: {join_summary['justice_terms_scores_only']}")
        joined.write_parquet(ctx.data_dir / "joined_votes.parquet")

        # ── Phase 2: EDA ────────────────────────────────────────────────
        print_header("PHASE 2: EXPLORATORY PLOTS")

        plot_ideology_over_time(joined, ctx.plots_dir / "ideology_over_time.png")
        plot_liberal_share_heatmap(joined, ctx.plots_dir / "liberal_share_by_area.png")
        plot_direction_by_area(joined, ctx.plots_dir / "direction_by_area.png")

        # ── Phase 3: Features ───────────────────────────────────────────
        print_header("PHASE 3: FEATURE MATRIX")

        majority = compute_majority_directions(joined)
        n_ties = majority.filter(pl.col("majority_direction").is_null()).height
        features = build_feature_matrix(joined)
        print(f"  Justice-term-area groups: {majority.height:,} ({n_ties} exact ties excluded)")
        print(f"  Feature matrix: {features.height:,} rows × {len(FEATURE_AREAS)} areas")
        print(f"  Conservative rate: {features[LABEL].mean():.3f}")
        majority.write_parquet(ctx.data_dir / "majority_directions.parquet")
        features.write_parquet(ctx.data_dir / "feature_matrix.parquet")

        # ── Phase 4: Split & Balance ────────────────────────────────────
        print_header("PHASE 4: SPLIT & BALANCE")

        train, test = split_train_test(features, seed=args.seed, train_frac=args.train_frac)
        balanced = downsample(train, seed=args.seed)
        print(f"  Train: {train.height} rows, test: {test.height} rows")
        print(
            f"  Balanced train: {balanced.height} rows "
            f"({balanced.filter(pl.col(LABEL) == 1).height} conservative / "
            f"{balanced.filter(pl.col(LABEL) == 0).height} liberal)"
        )
        balanced.write_parquet(ctx.data_dir / "train.parquet")
        test.write_parquet(ctx.data_dir / "test.parquet")
        plot_label_balance(train, balanced, ctx.plots_dir / "label_balance.png")

        # ── Phase 5: Fit & Compare ──────────────────────────────────────
        print_header("PHASE 5: MODEL FIT & COMPARISON")

        full = fit_logit(balanced, FEATURE_AREAS)
        reduced = fit_logit(balanced, REDUCED_AREAS)
        lr_test = likelihood_ratio_test(full, reduced)
        print(f"  Full ({len(FEATURE_AREAS)} areas):    logLik={full.llf:.3f}, AIC={full.aic:.2f}")
        print(
            f"  Reduced ({len(REDUCED_AREAS)} areas): "
            f"logLik={reduced.llf:.3f}, AIC={reduced.aic:.2f}"
        )
        print(
            f"  LR test: chi2={lr_test['statistic']:.3f}, df={lr_test['df']}, "
            f"p={lr_test['p_value']:.4f}"
        )

        coefs = coefficient_table(full)
        coefs.write_parquet(ctx.data_dir / "coefficients.parquet")
        for row in coefs.iter_rows(named=True):
            print(f"    {row['term']:20s} {row['estimate']:+.3f}  (p={row['p_value']:.3f})")
        plot_coefficients(coefs, ctx.plots_dir / "coefficients.png")

        # ── Phase 6: Evaluate ───────────────────────────────────────────
        print_header("PHASE 6: HOLDOUT EVALUATION")

        holdout = evaluate_holdout(full, test)
        print(
            f"  Accuracy: {holdout['accuracy']:.3f} "
            f"({holdout['n_correct']}/{holdout['n_test']} at threshold {holdout['threshold']:.2f})"
        )
        holdout["scored"].write_parquet(ctx.data_dir / "holdout_scores.parquet")
        plot_holdout_probabilities(
            holdout["scored"], holdout["threshold"], ctx.plots_dir / "holdout_probabilities.png"
        )

        # ── Phase 7: Predictor Form ─────────────────────────────────────
        predictor = IdeologyPredictor(full)
        form_rows = []
        if args.predict or args.interactive:
            print_header("PHASE 7: PREDICTOR FORM")

        for text in args.predict:
            choices = parse_choices(text, predictor.columns)
            form_rows.append(
                _answer_form(predictor, choices, holdout, ctx.plots_dir, len(form_rows) + 1)
            )

        while args.interactive:
            choices = prompt_choices(predictor.columns, input_fn=input_fn)
            form_rows.append(
                _answer_form(predictor, choices, holdout, ctx.plots_dir, len(form_rows) + 1)
            )
            if input_fn("  Another? [y/N]: ").strip().lower() != "y":
                break

        # ── Filtering Manifest ──────────────────────────────────────────
        print_header("FILTERING MANIFEST")

        manifest = {
            "random_seed": args.seed,
            "train_frac": args.train_frac,
            "threshold": THRESHOLD,
            "raw_vote_rows": data["raw_votes"].height,
            "unknown_direction_rows_dropped": data["raw_votes"].height - data["votes"].height,
            "join": join_summary,
            "majority_groups": majority.height,
            "majority_ties_excluded": n_ties,
            "feature_rows": features.height,
            "feature_areas": FEATURE_AREAS,
            "reduced_areas": REDUCED_AREAS,
            "train_rows": train.height,
            "balanced_train_rows": balanced.height,
            "test_rows": test.height,
        }
        manifest_path = ctx.run_dir / "filtering_manifest.json"
        with open(manifest_path, "w") as f:
            json.dump(manifest, f, indent=2, default=str)
        print("  Saved: filtering_manifest.json")

        # ── HTML Report ─────────────────────────────────────────────────
        print_header("HTML REPORT")

        results = {
            "data": data,
            "join_summary": join_summary,
            "majority": majority,
            "features": features,
            "train": train,
            "balanced": balanced,
            "test": test,
            "lr_test": lr_test,
            "coefficients": coefs,
            "holdout": holdout,
            "form_predictions": form_rows,
            "params": {"seed": args.seed, "train_frac": args.train_frac},
        }
        build_ideology_report(ctx.report, results=results, plots_dir=ctx.plots_dir)

        print("  Done!")


if __name__ == "__main__":
    main()
