"""Output directory, console capture, and run metadata for one analysis run.

Layout produced under the results root:

    results/<dataset>/<analysis>/
        README.md          primer (overwritten each run)
        latest -> <date>   relative symlink to the newest successful run
        <date>/
            plots/  data/
            run_log.txt  run_info.json  <analysis>_report.html

Usage:
    with RunContext(dataset="scdb", analysis_name="ideology", params=vars(args),
                    primer=IDEOLOGY_PRIMER) as ctx:
        features.write_parquet(ctx.data_dir / "feature_matrix.parquet")
        build_ideology_report(ctx.report, results=results, plots_dir=ctx.plots_dir)

A run that exits with an exception still gets its log and a run_info.json
with "status": "failed", but no report and no `latest` update.
"""

from __future__ import annotations

import io
import json
import re
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType


class _TeeStream:
    """stdout replacement that echoes to the console and keeps a copy."""

    def __init__(self, console: io.TextIOBase) -> None:
        self._console = console
        self._captured = io.StringIO()

    def write(self, text: str) -> int:
        self._console.write(text)
        return self._captured.write(text)

    def flush(self) -> None:
        self._console.flush()

    def getvalue(self) -> str:
        return self._captured.getvalue()


def _normalize_dataset(dataset: str) -> str:
    """Lowercase slug for directory names.

    Examples:
        "SCDB 2023"       -> "scdb_2023"
        "scdb-2023/MQ"    -> "scdb_2023_mq"
        "   "             -> "default"
    """
    slug = re.sub(r"[^a-z0-9]+", "_", dataset.strip().lower()).strip("_")
    return slug or "default"


def _git_commit_hash() -> str:
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"], capture_output=True, text=True, timeout=5
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return "unknown"
    return proc.stdout.strip() if proc.returncode == 0 else "unknown"


class RunContext:
    """Context manager owning the output tree of one analysis run.

    Attributes:
        dataset: Slugged dataset label.
        analysis_name: e.g. "ideology".
        params: Recorded verbatim in run_info.json.
        run_dir / plots_dir / data_dir: Output directories for this date.
        report: ReportBuilder filled in by the analysis; written on success.
    """

    def __init__(
        self,
        dataset: str,
        analysis_name: str,
        params: dict | None = None,
        results_root: Path | None = None,
        primer: str | None = None,
    ) -> None:
        self.dataset = _normalize_dataset(dataset)
        self.analysis_name = analysis_name
        self.params = params or {}
        self.run_date = datetime.now(timezone.utc).strftime("%Y-%m-%d")

        self.analysis_dir = (results_root or Path("results")) / self.dataset / analysis_name
        self.run_dir = self.analysis_dir / self.run_date
        self.plots_dir = self.run_dir / "plots"
        self.data_dir = self.run_dir / "data"

        self._primer = primer
        self._tee: _TeeStream | None = None
        self._console: io.TextIOBase | None = None
        self._started: datetime | None = None

        try:
            from analysis.report import ReportBuilder
        except ModuleNotFoundError:
            from report import ReportBuilder  # type: ignore[no-redef]
        self.report = ReportBuilder(title=f"{analysis_name.upper()} Report", dataset=self.dataset)

    def __enter__(self) -> RunContext:
        self.setup()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.finalize(failed=exc_type is not None)

    def setup(self) -> None:
        for d in (self.plots_dir, self.data_dir):
            d.mkdir(parents=True, exist_ok=True)
        if self._primer:
            (self.analysis_dir / "README.md").write_text(self._primer, encoding="utf-8")

        self._console = sys.stdout
        self._tee = _TeeStream(sys.stdout)
        sys.stdout = self._tee  # type: ignore[assignment]
        self._started = datetime.now(timezone.utc)

    def _stop_capture(self) -> str:
        if self._console is not None:
            sys.stdout = self._console  # type: ignore[assignment]
        return self._tee.getvalue() if self._tee is not None else ""

    def finalize(self, failed: bool = False) -> None:
        """Write the log and run_info.json; on success also the report and `latest`."""
        (self.run_dir / "run_log.txt").write_text(self._stop_capture(), encoding="utf-8")

        commit = _git_commit_hash()
        run_info = {
            "analysis": self.analysis_name,
            "dataset": self.dataset,
            "run_date": self.run_date,
            "timestamp_start": self._started.isoformat() if self._started else None,
            "timestamp_end": datetime.now(timezone.utc).isoformat(),
            "status": "failed" if failed else "ok",
            "git_commit": commit,
            "python_version": sys.version,
            "params": self.params,
        }
        with open(self.run_dir / "run_info.json", "w") as f:
            json.dump(run_info, f, indent=2, default=str)

        if failed:
            return

        if self.report.has_sections:
            self.report.git_hash = commit
            self.report.write(self.run_dir / f"{self.analysis_name}_report.html")

        latest = self.analysis_dir / "latest"
        if latest.is_symlink() or latest.exists():
            latest.unlink()
        latest.symlink_to(self.run_date)
