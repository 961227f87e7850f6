"""Ideology-specific HTML report builder.

Each section is a small function that slices polars DataFrames from the
results dict and calls make_gt() or FigureSection.from_file().

Usage (called from ideology.py):
    from analysis.ideology_report import build_ideology_report
    build_ideology_report(ctx.report, results=results, plots_dir=ctx.plots_dir)
"""

from __future__ import annotations

from pathlib import Path

import polars as pl

try:
    from analysis.report import FigureSection, ReportBuilder, TableSection, TextSection, make_gt
except ModuleNotFoundError:
    from report import (  # type: ignore[no-redef]
        FigureSection,
        ReportBuilder,
        TableSection,
        TextSection,
        make_gt,
    )

from scotus_ideology.config import FEATURE_AREAS, REDUCED_AREAS


def build_ideology_report(
    report: ReportBuilder,
    *,
    results: dict,
    plots_dir: Path,
) -> None:
    """Build the full ideology HTML report by adding sections to the ReportBuilder."""
    _add_data_summary(report, results)
    _add_how_to_read(report)
    _add_join_summary(report, results)

    _add_figure(
        report,
        plots_dir / "ideology_over_time.png",
        "fig-ideology-time",
        "Ideology Scores by Term",
        "One line per justice. Positive scores are conservative; the dashed line is zero.",
    )
    _add_figure(
        report,
        plots_dir / "liberal_share_by_area.png",
        "fig-liberal-share",
        "Liberal Vote Share by Justice and Issue Area",
        "Share of each justice's votes cast in the liberal direction, all terms pooled.",
    )
    _add_figure(
        report,
        plots_dir / "direction_by_area.png",
        "fig-direction-area",
        "Vote Direction by Issue Area",
        None,
    )

    _add_feature_preview(report, results)
    _add_feature_value_counts(report, results)
    _add_label_balance(report, results)
    _add_figure(
        report,
        plots_dir / "label_balance.png",
        "fig-label-balance",
        "Training Label Balance",
        "The majority class is downsampled to the minority count before fitting.",
    )

    _add_lr_test(report, results)
    _add_coefficients(report, results)
    _add_figure(
        report,
        plots_dir / "coefficients.png",
        "fig-coefficients",
        "Full Model Coefficients",
        None,
    )

    _add_holdout_summary(report, results)
    _add_figure(
        report,
        plots_dir / "holdout_probabilities.png",
        "fig-holdout",
        "Held-out Predicted Probabilities",
        "Points right of the dashed line are predicted conservative.",
    )
    _add_misclassified_table(report, results)

    _add_form_predictions(report, results, plots_dir)
    _add_parameters_table(report, results)

    print(f"  Report: {len(report._sections)} sections added")


# ── Section Builders ──────────────────────────────────────────────────────────


def _add_figure(
    report: ReportBuilder,
    path: Path,
    section_id: str,
    title: str,
    caption: str | None,
) -> None:
    if path.exists():
        report.add(FigureSection.from_file(section_id, title, path, caption=caption))


def _add_data_summary(report: ReportBuilder, results: dict) -> None:
    data = results["data"]
    features = results["features"]
    df = pl.DataFrame(
        [
            {"Stage": "Raw votes", "Rows": data["raw_votes"].height},
            {"Stage": "Votes with known direction", "Rows": data["votes"].height},
            {"Stage": "Ideology scores", "Rows": data["scores"].height},
            {"Stage": "Joined votes", "Rows": data["joined"].height},
            {"Stage": "Justice-terms (feature rows)", "Rows": features.height},
            {"Stage": "Balanced training rows", "Rows": results["balanced"].height},
            {"Stage": "Held-out rows", "Rows": results["test"].height},
        ]
    )
    html = make_gt(df, title="Data Summary", number_formats={"Rows": ","})
    report.add(TableSection(id="data-summary", title="Data Summary", html=html))


def _add_how_to_read(report: ReportBuilder) -> None:
    html = """
    <p><strong>This report asks whether a justice's majority voting direction in each
    issue area predicts whether their ideology score for that term is conservative.</strong></p>
    <ul>
    <li><strong>Unit of analysis:</strong> one justice in one term. Each of 11 issue-area
    columns is 1 (majority conservative), 2 (majority liberal), or 0 (no votes in that area,
    or an exact tie).</li>
    <li><strong>Label:</strong> 1 when the term's ideology score is above zero.</li>
    <li><strong>Model:</strong> binomial GLM with a logit link, fit on a class-balanced
    training set. An 8-area model nested inside the 11-area model is compared with a
    likelihood-ratio test.</li>
    <li><strong>Evaluation:</strong> accuracy on the held-out 30%, predicting conservative
    when the probability exceeds 0.50.</li>
    </ul>
    """
    report.add(TextSection(id="how-to-read", title="How to Read This Report", html=html))


def _add_join_summary(report: ReportBuilder, results: dict) -> None:
    s = results["join_summary"]
    df = pl.DataFrame(
        [
            {"Measure": "Clean vote rows", "Value": s["vote_rows"]},
            {"Measure": "Score rows", "Value": s["score_rows"]},
            {"Measure": "Joined rows", "Value": s["joined_rows"]},
            {"Measure": "Vote rows without a score", "Value": s["vote_rows_dropped"]},
            {"Measure": "Justice-terms only in votes", "Value": s["justice_terms_votes_only"]},
            {"Measure": "Justice-terms only in scores", "Value": s["justice_terms_scores_only"]},
            {"Measure": "Justices joined", "Value": s["justices_joined"]},
            {"Measure": "Terms joined", "Value": s["terms_joined"]},
        ]
    )
    html = make_gt(
        df,
        title="Inner Join on (term, justice)",
        number_formats={"Value": ","},
        source_note="Unmatched justice-terms are dropped from both sides without error.",
    )
    report.add(TableSection(id="join-summary", title="Join Summary", html=html))


def _add_feature_preview(report: ReportBuilder, results: dict) -> None:
    features = results["features"]
    preview = features.sort("term", "justice_id", descending=[True, False]).head(15)
    html = make_gt(
        preview,
        title=f"Feature Matrix (most recent 15 of {features.height} rows)",
        number_formats={"score_mean": ".3f"},
        source_note="1 = conservative majority, 2 = liberal majority, 0 = absent or tied.",
    )
    report.add(TableSection(id="feature-preview", title="Feature Matrix", html=html))


def _add_feature_value_counts(report: ReportBuilder, results: dict) -> None:
    features = results["features"]
    rows = []
    for area in FEATURE_AREAS:
        col = features[area]
        rows.append(
            {
                "Issue Area": area,
                "Absent/Tied (0)": int((col == 0).sum()),
                "Conservative (1)": int((col == 1).sum()),
                "Liberal (2)": int((col == 2).sum()),
            }
        )
    html = make_gt(
        pl.DataFrame(rows),
        title="Feature Values by Issue Area",
        subtitle=f"{results['majority'].filter(pl.col('majority_direction').is_null()).height} "
        "exact ties excluded before pivoting",
    )
    report.add(TableSection(id="feature-values", title="Feature Value Counts", html=html))


def _add_label_balance(report: ReportBuilder, results: dict) -> None:
    rows = []
    for name, df in [
        ("All justice-terms", results["features"]),
        ("Train (before balancing)", results["train"]),
        ("Train (balanced)", results["balanced"]),
        ("Held-out", results["test"]),
    ]:
        rows.append(
            {
                "Set": name,
                "Conservative": df.filter(pl.col("conservative") == 1).height,
                "Liberal": df.filter(pl.col("conservative") == 0).height,
            }
        )
    html = make_gt(pl.DataFrame(rows), title="Label Counts")
    report.add(TableSection(id="label-balance", title="Label Balance", html=html))


def _add_lr_test(report: ReportBuilder, results: dict) -> None:
    lr = results["lr_test"]
    df = pl.DataFrame(
        [
            {
                "Model": f"Reduced ({lr['reduced_n_features']} areas)",
                "Log-Likelihood": lr["llf_reduced"],
                "AIC": lr["aic_reduced"],
            },
            {
                "Model": f"Full ({lr['full_n_features']} areas)",
                "Log-Likelihood": lr["llf_full"],
                "AIC": lr["aic_full"],
            },
        ]
    )
    html = make_gt(
        df,
        title="Nested Model Comparison",
        subtitle=f"Areas added by the full model: {', '.join(lr['dropped'])}",
        number_formats={"Log-Likelihood": ".3f", "AIC": ".2f"},
        source_note=(
            f"Likelihood-ratio test: chi-squared = {lr['statistic']:.3f}, "
            f"df = {lr['df']}, p = {lr['p_value']:.4f}."
        ),
    )
    report.add(TableSection(id="lr-test", title="Likelihood-Ratio Test", html=html))

    verdict = (
        "improve the fit significantly at the 5% level"
        if lr["p_value"] < 0.05
        else "do not improve the fit significantly at the 5% level"
    )
    html = (
        f"<p>The areas in the full model beyond the reduced set ({', '.join(lr['dropped'])}) "
        f"{verdict} (p = {lr['p_value']:.4f}). The full {len(FEATURE_AREAS)}-area model is "
        f"kept for evaluation and the predictor form either way, so that the form covers "
        f"every retained issue area; the {len(REDUCED_AREAS)}-area model is reported for "
        f"comparison only.</p>"
    )
    report.add(TextSection(id="lr-interpretation", title="Model Selection", html=html))


def _add_coefficients(report: ReportBuilder, results: dict) -> None:
    html = make_gt(
        results["coefficients"],
        title="Full Model Coefficients",
        column_labels={
            "term": "Term",
            "estimate": "Estimate",
            "std_error": "Std. Error",
            "z": "z",
            "p_value": "p",
            "ci_low": "95% Low",
            "ci_high": "95% High",
        },
        number_formats={
            "estimate": ".3f",
            "std_error": ".3f",
            "z": ".2f",
            "p_value": ".4f",
            "ci_low": ".3f",
            "ci_high": ".3f",
        },
        source_note="Log-odds of a conservative term per unit of the area's direction code.",
    )
    report.add(TableSection(id="coefficients", title="Coefficients", html=html))


def _add_holdout_summary(report: ReportBuilder, results: dict) -> None:
    h = results["holdout"]
    html = f"""
    <p>On the held-out set the full model classifies <strong>{h['accuracy']:.1%}</strong>
    of justice-terms correctly ({h['n_correct']} of {h['n_test']}), predicting conservative
    when P(conservative) exceeds {h['threshold']:.2f}.</p>
    <p>An earlier write-up of this analysis quoted an accuracy of roughly 90%, which did not
    match the value its own pipeline printed. The figure above is the one computed in this
    run; it will move by whole rows with a different seed or split proportion.</p>
    """
    report.add(TextSection(id="holdout-accuracy", title="Held-out Accuracy", html=html))


def _add_misclassified_table(report: ReportBuilder, results: dict) -> None:
    scored = results["holdout"]["scored"]
    wrong = scored.filter(pl.col("correct") == 0).sort("term")
    if wrong.height == 0:
        return
    html = make_gt(
        wrong.drop("correct"),
        title=f"Misclassified Held-out Justice-Terms ({wrong.height})",
        column_labels={"prob_conservative": "P(conservative)"},
        number_formats={"score_mean": ".3f", "prob_conservative": ".3f"},
    )
    report.add(TableSection(id="misclassified", title="Misclassified Rows", html=html))


def _add_form_predictions(report: ReportBuilder, results: dict, plots_dir: Path) -> None:
    rows = results.get("form_predictions") or []
    if not rows:
        return
    html = make_gt(
        pl.DataFrame(rows),
        title="Predictor Form Requests",
        column_labels={"prob_conservative": "P(conservative)"},
        number_formats={"prob_conservative": ".1%"},
    )
    report.add(TableSection(id="form-predictions", title="Predictor Form", html=html))
    for n in range(1, len(rows) + 1):
        _add_figure(
            report,
            plots_dir / f"form_prediction_{n}.png",
            f"fig-form-{n}",
            f"Predictor Form Request {n}",
            None,
        )


def _add_parameters_table(report: ReportBuilder, results: dict) -> None:
    try:
        from analysis.ideology import THRESHOLD
    except ModuleNotFoundError:
        from ideology import THRESHOLD  # type: ignore[no-redef]

    params = results["params"]
    rows = [
        {"Parameter": "RANDOM_SEED", "Value": str(params["seed"])},
        {"Parameter": "TRAIN_FRAC", "Value": str(params["train_frac"])},
        {"Parameter": "THRESHOLD", "Value": str(THRESHOLD)},
        {"Parameter": "FEATURE_AREAS", "Value": ", ".join(FEATURE_AREAS)},
        {"Parameter": "REDUCED_AREAS", "Value": ", ".join(REDUCED_AREAS)},
    ]
    html = make_gt(pl.DataFrame(rows), title="Analysis Parameters")
    report.add(TableSection(id="parameters", title="Analysis Parameters", html=html))
