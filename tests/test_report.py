"""
Tests for the HTML report framework (report.py), RunContext, and a full
ideology run against the synthetic CSV fixture.

Run: uv run pytest tests/test_report.py -v
"""

from __future__ import annotations

import json

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import polars as pl
import pytest

from analysis.report import FigureSection, ReportBuilder, TableSection, TextSection, make_gt
from analysis.run_context import RunContext, _normalize_dataset
from scotus_ideology.config import FEATURE_AREAS

# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def png_path(tmp_path):
    path = tmp_path / "tiny.png"
    fig, ax = plt.subplots(figsize=(1, 1))
    ax.plot([0, 1], [0, 1])
    fig.savefig(path)
    plt.close(fig)
    return path


# ── make_gt ──────────────────────────────────────────────────────────────────


class TestMakeGt:
    def test_renders_title_and_values(self):
        df = pl.DataFrame({"area": ["privacy", "unions"], "n": [12, 3]})
        html = make_gt(df, title="Counts Table")
        assert "Counts Table" in html
        assert "privacy" in html

    def test_column_labels(self):
        df = pl.DataFrame({"p_value": [0.01234]})
        html = make_gt(df, title="T", column_labels={"p_value": "P Value Label"})
        assert "P Value Label" in html

    def test_number_format(self):
        df = pl.DataFrame({"x": [0.123456]})
        html = make_gt(df, title="T", number_formats={"x": ".2f"})
        assert "0.12" in html
        assert "0.123456" not in html

    def test_unknown_columns_ignored(self):
        df = pl.DataFrame({"x": [1]})
        html = make_gt(df, title="T", column_labels={"y": "Y"}, number_formats={"y": ".2f"})
        assert "<table" in html

    def test_source_note(self):
        html = make_gt(pl.DataFrame({"x": [1]}), title="T", source_note="Footnote text here")
        assert "Footnote text here" in html


# ── ReportBuilder ────────────────────────────────────────────────────────────


class TestReportBuilder:
    def test_empty(self):
        assert not ReportBuilder(title="R", dataset="d").has_sections

    def test_write(self, tmp_path):
        report = ReportBuilder(title="IDEOLOGY Report", dataset="scdb")
        report.add(TextSection(id="intro", title="Intro", html="<p>hello</p>"))
        report.add(TableSection(id="tbl", title="Table", html="<table></table>"))
        path = tmp_path / "report.html"
        report.write(path)
        text = path.read_text(encoding="utf-8")
        assert text.startswith("<!DOCTYPE html>")
        assert '<section id="intro">' in text
        assert 'href="#tbl"' in text
        assert "<p>hello</p>" in text

    def test_title_escaped(self):
        report = ReportBuilder(title="A <b> Report", dataset="d")
        report.add(TextSection(id="x", title="X & Y", html=""))
        html = report.render()
        assert "A &lt;b&gt; Report" in html
        assert "X &amp; Y" in html


class TestFigureSection:
    def test_from_file_embeds_png(self, png_path):
        section = FigureSection.from_file("fig", "Figure", png_path, caption="A caption")
        html = section.render()
        assert 'src="data:image/png;base64,' in html
        assert "<figcaption>A caption</figcaption>" in html

    def test_no_caption(self, png_path):
        html = FigureSection.from_file("fig", "Figure", png_path).render()
        assert "figcaption" not in html


# ── RunContext ───────────────────────────────────────────────────────────────


class TestRunContext:
    def test_normalize_dataset(self):
        assert _normalize_dataset("SCDB 2023") == "scdb_2023"
        assert _normalize_dataset("scdb-2023/MQ") == "scdb_2023_mq"
        assert _normalize_dataset("  ") == "default"

    def test_directories_and_metadata(self, tmp_path):
        with RunContext(
            dataset="SCDB", analysis_name="ideology", params={"seed": 100}, results_root=tmp_path
        ) as ctx:
            assert ctx.plots_dir.is_dir()
            assert ctx.data_dir.is_dir()
            print("captured line")

        assert "captured line" in (ctx.run_dir / "run_log.txt").read_text()
        info = json.loads((ctx.run_dir / "run_info.json").read_text())
        assert info["status"] == "ok"
        assert info["dataset"] == "scdb"
        assert info["params"] == {"seed": 100}
        latest = tmp_path / "scdb" / "ideology" / "latest"
        assert latest.is_symlink()
        assert latest.resolve() == ctx.run_dir.resolve()

    def test_primer_written(self, tmp_path):
        with RunContext(
            dataset="scdb", analysis_name="ideology", results_root=tmp_path, primer="# Primer"
        ):
            pass
        assert (tmp_path / "scdb" / "ideology" / "README.md").read_text() == "# Primer"

    def test_report_written_when_sections(self, tmp_path):
        with RunContext(dataset="scdb", analysis_name="ideology", results_root=tmp_path) as ctx:
            ctx.report.add(TextSection(id="a", title="A", html="<p>a</p>"))
        assert (ctx.run_dir / "ideology_report.html").exists()

    def test_failed_run(self, tmp_path):
        with pytest.raises(RuntimeError):
            with RunContext(dataset="scdb", analysis_name="ideology", results_root=tmp_path) as ctx:
                ctx.report.add(TextSection(id="a", title="A", html="<p>a</p>"))
                raise RuntimeError("boom")

        info = json.loads((ctx.run_dir / "run_info.json").read_text())
        assert info["status"] == "failed"
        assert not (ctx.run_dir / "ideology_report.html").exists()
        assert not (tmp_path / "scdb" / "ideology" / "latest").exists()


# ── End to End ───────────────────────────────────────────────────────────────


class TestIdeologyRun:
    def test_full_run(self, csv_dir, monkeypatch):
        from analysis.ideology import main

        monkeypatch.chdir(csv_dir)
        choices = ",".join(["c"] * len(FEATURE_AREAS))
        main(["--data-dir", str(csv_dir), "--dataset", "synthetic", "--predict", choices])

        analysis_dir = csv_dir / "results" / "synthetic" / "ideology"
        run_dir = (analysis_dir / "latest").resolve()
        for name in [
            "joined_votes",
            "majority_directions",
            "feature_matrix",
            "train",
            "test",
            "holdout_scores",
            "coefficients",
        ]:
            assert (run_dir / "data" / f"{name}.parquet").exists()
        assert (run_dir / "plots" / "form_prediction_1.png").exists()
        assert (run_dir / "ideology_report.html").exists()

        manifest = json.loads((run_dir / "filtering_manifest.json").read_text())
        assert manifest["random_seed"] == 100
        assert manifest["feature_areas"] == FEATURE_AREAS
        assert manifest["balanced_train_rows"] % 2 == 0

        log = (run_dir / "run_log.txt").read_text()
        assert "Accuracy:" in log
        assert "Predicted probability of a conservative term" in log

    def test_missing_input_fails_run(self, tmp_path, monkeypatch):
        from analysis.ideology import main

        monkeypatch.chdir(tmp_path)
        with pytest.raises(FileNotFoundError):
            main(["--data-dir", str(tmp_path)])
        info_files = list((tmp_path / "results").rglob("run_info.json"))
        assert len(info_files) == 1
        assert json.loads(info_files[0].read_text())["status"] == "failed"

    def test_report_states_computed_accuracy(self, csv_dir, monkeypatch):
        from analysis.ideology import main

        monkeypatch.chdir(csv_dir)
        main(["--data-dir", str(csv_dir), "--dataset", "synthetic"])

        run_dir = (csv_dir / "results" / "synthetic" / "ideology" / "latest").resolve()
        scored = pl.read_parquet(run_dir / "data" / "holdout_scores.parquet")
        accuracy = scored["correct"].mean()
        html = (run_dir / "ideology_report.html").read_text(encoding="utf-8")

        section = html.split('<section id="holdout-accuracy">', 1)[1].split("</section>", 1)[0]
        assert f"<strong>{accuracy:.1%}</strong>" in section
        assert f"({scored['correct'].sum()} of {scored.height})" in section

    def test_malformed_predict_writes_nothing(self, csv_dir, monkeypatch):
        from analysis.ideology import main

        monkeypatch.chdir(csv_dir)
        with pytest.raises(SystemExit):
            main(["--data-dir", str(csv_dir), "--predict", "c,l,c"])
        assert not (csv_dir / "results").exists()

    def test_interactive_form(self, csv_dir, monkeypatch):
        from analysis.ideology import main

        monkeypatch.chdir(csv_dir)
        n = len(FEATURE_AREAS)
        answers = iter(["c"] * n + ["y"] + ["x"] + ["l"] * n + ["n"])
        main(
            ["--data-dir", str(csv_dir), "--dataset", "synthetic", "--interactive"],
            input_fn=lambda _: next(answers),
        )

        run_dir = (csv_dir / "results" / "synthetic" / "ideology" / "latest").resolve()
        assert (run_dir / "plots" / "form_prediction_1.png").exists()
        assert (run_dir / "plots" / "form_prediction_2.png").exists()
        assert not (run_dir / "plots" / "form_prediction_3.png").exists()
        html = (run_dir / "ideology_report.html").read_text(encoding="utf-8")
        assert 'id="form-predictions"' in html
