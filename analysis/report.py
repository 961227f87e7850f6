"""Self-contained HTML report framework.

A report is an ordered list of sections (text, tables, figures) rendered into a
single HTML file with an inline stylesheet and base64-embedded PNGs, so the
file can be opened or shared without its plots directory.

Tables are rendered from polars DataFrames with great_tables via make_gt().

Usage:
    report = ReportBuilder(title="IDEOLOGY Report", dataset="scdb_2023")
    report.add(TextSection(id="intro", title="Introduction", html="<p>...</p>"))
    report.add(TableSection(id="summary", title="Summary", html=make_gt(df, title="...")))
    report.add(FigureSection.from_file("fig-roc", "ROC", plots_dir / "roc.png"))
    report.write(run_dir / "ideology_report.html")
"""

from __future__ import annotations

import base64
import html as html_lib
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import polars as pl
from great_tables import GT

# ── Sections ─────────────────────────────────────────────────────────────────


@dataclass
class TextSection:
    id: str
    title: str
    html: str

    def render(self) -> str:
        return self.html


@dataclass
class TableSection:
    id: str
    title: str
    html: str

    def render(self) -> str:
        return f'<div class="table-wrap">{self.html}</div>'


@dataclass
class FigureSection:
    id: str
    title: str
    image_b64: str
    caption: str | None = None

    @classmethod
    def from_file(
        cls,
        id: str,
        title: str,
        path: Path,
        caption: str | None = None,
    ) -> FigureSection:
        """Read a PNG from disk and embed it."""
        data = base64.b64encode(Path(path).read_bytes()).decode("ascii")
        return cls(id=id, title=title, image_b64=data, caption=caption)

    def render(self) -> str:
        parts = [
            "<figure>",
            f'<img src="data:image/png;base64,{self.image_b64}" '
            f'alt="{html_lib.escape(self.title)}">',
        ]
        if self.caption:
            parts.append(f"<figcaption>{html_lib.escape(self.caption)}</figcaption>")
        parts.append("</figure>")
        return "\n".join(parts)


Section = TextSection | TableSection | FigureSection


# ── Tables ───────────────────────────────────────────────────────────────────


def _apply_format(gt: GT, column: str, fmt: str) -> GT:
    """Apply a Python-style format spec (".3f", ".1%", ".2e", ",") to one column."""
    decimals = 0
    spec = fmt.lstrip(",")
    if spec.startswith(".") and spec[1:-1].isdigit():
        decimals = int(spec[1:-1])

    if spec.endswith("%"):
        return gt.fmt_percent(columns=column, decimals=decimals)
    if spec.endswith("e"):
        return gt.fmt_scientific(columns=column, decimals=decimals)
    if spec.endswith("f"):
        return gt.fmt_number(columns=column, decimals=decimals, use_seps=fmt.startswith(","))
    return gt.fmt_integer(columns=column)


def make_gt(
    df: pl.DataFrame,
    title: str,
    subtitle: str | None = None,
    column_labels: dict[str, str] | None = None,
    number_formats: dict[str, str] | None = None,
    source_note: str | None = None,
) -> str:
    """Render a polars DataFrame as a great_tables HTML fragment."""
    gt = GT(df).tab_header(title=title, subtitle=subtitle)

    for column, fmt in (number_formats or {}).items():
        if column in df.columns:
            gt = _apply_format(gt, column, fmt)

    if column_labels:
        labels = {k: v for k, v in column_labels.items() if k in df.columns}
        if labels:
            gt = gt.cols_label(**labels)

    if source_note:
        gt = gt.tab_source_note(source_note=source_note)

    return gt.as_raw_html()


# ── Builder ──────────────────────────────────────────────────────────────────

_CSS = """
body { font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif;
       max-width: 1100px; margin: 2rem auto; padding: 0 1rem; color: #222; }
h1 { border-bottom: 2px solid #333; padding-bottom: .3rem; }
h2 { margin-top: 2.5rem; border-bottom: 1px solid #ccc; padding-bottom: .2rem; }
nav ol { columns: 2; font-size: .9rem; }
figure { margin: 1rem 0; text-align: center; }
figure img { max-width: 100%; }
figcaption { font-size: .9rem; color: #555; margin-top: .4rem; }
.table-wrap { overflow-x: auto; }
footer { margin-top: 3rem; font-size: .8rem; color: #777; }
"""


class ReportBuilder:
    """Collects sections and writes one self-contained HTML file."""

    def __init__(self, title: str, dataset: str) -> None:
        self.title = title
        self.dataset = dataset
        self.git_hash = "unknown"
        self._sections: list[Section] = []

    def add(self, section: Section) -> None:
        self._sections.append(section)

    @property
    def has_sections(self) -> bool:
        return len(self._sections) > 0

    def render(self) -> str:
        generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        toc = "\n".join(
            f'<li><a href="#{s.id}">{html_lib.escape(s.title)}</a></li>' for s in self._sections
        )
        body = "\n".join(
            f'<section id="{s.id}">\n<h2>{html_lib.escape(s.title)}</h2>\n{s.render()}\n</section>'
            for s in self._sections
        )
        title = html_lib.escape(f"{self.title} — {self.dataset}")
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>{_CSS}</style>
</head>
<body>
<h1>{title}</h1>
<nav><ol>
{toc}
</ol></nav>
{body}
<footer>Generated {generated} · git {html_lib.escape(self.git_hash[:10])}</footer>
</body>
</html>
"""

    def write(self, path: Path) -> None:
        path.write_text(self.render(), encoding="utf-8")
        print(f"  Saved: {path.name}")
