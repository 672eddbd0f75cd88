from __future__ import annotations

"""
StormRank report generator
--------------------------
Renders the two rankings produced by `StormAnalysis`:

- text tables (printed by the CLI),
- bar charts (matplotlib PNG files),
- a DOCX report bundling tables, charts and a reproducibility footer.

Design goals:
- Keep StormRank usable even if report dependencies are missing (lazy imports).
- The reporter only reads `AggregateRow` fields; it never recomputes totals.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union
import os
import tempfile

from loguru import logger

from .models import Ranking

PathLike = Union[str, Path]


# -----------------------------
# Configuration / citation types
# -----------------------------

@dataclass
class DatasetCitation:
    """Minimal dataset citation metadata for the DOCX report."""
    database_name: str = "Storm Events Database"
    institutional_author: str = "U.S. National Oceanic and Atmospheric Administration (NOAA)"
    location: str = "Asheville, NC, USA"
    website: str = "https://www.ncdc.noaa.gov/stormevents/"
    file_name: Optional[str] = None
    file_note: Optional[str] = "Extract covering 1950 to November 2011."


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Storm Events: Health and Economic Impact"
    subtitle: str = "Most harmful event types across the United States"
    dataset_name: str = "NOAA Storm Database (StormData.csv.bz2)"
    citation: DatasetCitation = field(default_factory=DatasetCitation)

    # How many labels to show in bar charts / tables
    top_n: int = 5

    chart_dpi: int = 200


# -----------------------------
# Text tables
# -----------------------------

def _money(v: float) -> str:
    return f"{v:,.0f}"


def format_ranking(ranking: Ranking, n: Optional[int] = 5) -> str:
    """Plain-text table of the first `n` rows (all rows when n is None)."""
    rows = ranking.rows if n is None else ranking.top(n)
    if ranking.name == "health":
        header = f"{'#':>3}  {'Event type':<28} {'Fatalities':>11} {'Injuries':>10}"
        lines = [header, "-" * len(header)]
        for i, r in enumerate(rows, start=1):
            lines.append(f"{i:>3}  {r.label[:28]:<28} {r.total_fatalities:>11,} {r.total_injuries:>10,}")
    else:
        header = f"{'#':>3}  {'Event type':<28} {'Property US$':>18} {'Crop US$':>16} {'Total US$':>18}"
        lines = [header, "-" * len(header)]
        for i, r in enumerate(rows, start=1):
            lines.append(
                f"{i:>3}  {r.label[:28]:<28} {_money(r.total_property_damage):>18} "
                f"{_money(r.total_crop_damage):>16} {_money(r.total_damage):>18}"
            )
    if not rows:
        lines.append("  (no rows)")
    return "\n".join(lines)


# -----------------------------
# Charts
# -----------------------------

def _pyplot():
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib (and numpy).\n"
            "Install with: python -m pip install matplotlib numpy"
        ) from e
    return plt, np


def _save(plt, path: PathLike, dpi: int) -> str:
    os.makedirs(os.path.dirname(str(path)) or ".", exist_ok=True)
    plt.tight_layout()
    plt.savefig(path, dpi=dpi)
    plt.close()
    return str(path)


def plot_health(ranking: Ranking, path: PathLike, n: int = 5, *, dpi: int = 200) -> str:
    """Grouped bars: fatalities and injuries for the top `n` labels."""
    plt, np = _pyplot()
    rows = ranking.top(n)
    labels = [r.label for r in rows]
    x = np.arange(len(rows))
    width = 0.4

    plt.figure(figsize=(8, 5))
    plt.bar(x - width / 2, [r.total_fatalities for r in rows], width, label="Fatalities", color="C3")
    plt.bar(x + width / 2, [r.total_injuries for r in rows], width, label="Injuries", color="C1")
    plt.xticks(x, labels, rotation=45, ha="right")
    plt.title(f"Top {len(rows)} event types by fatalities")
    plt.ylabel("People")
    plt.legend()
    return _save(plt, path, dpi)


def plot_economic(ranking: Ranking, path: PathLike, n: int = 5, *, dpi: int = 200) -> str:
    """Stacked bars: property + crop damage (US$ billions) for the top `n` labels."""
    plt, np = _pyplot()
    rows = ranking.top(n)
    labels = [r.label for r in rows]
    prop = np.array([r.total_property_damage for r in rows]) / 1e9
    crop = np.array([r.total_crop_damage for r in rows]) / 1e9

    plt.figure(figsize=(8, 5))
    plt.bar(labels, prop, label="Property", color="C0")
    plt.bar(labels, crop, bottom=prop, label="Crop", color="C2")
    plt.xticks(rotation=45, ha="right")
    plt.title(f"Top {len(rows)} event types by economic damage")
    plt.ylabel("Damage (US$ billions)")
    plt.legend()
    return _save(plt, path, dpi)


def save_charts(analysis, out_dir: PathLike, n: int = 5, *, dpi: int = 200) -> List[str]:
    """Write both charts into `out_dir` and return their paths."""
    out = Path(out_dir)
    paths = [
        plot_health(analysis.health, out / "health_top.png", n, dpi=dpi),
        plot_economic(analysis.economic, out / "economic_top.png", n, dpi=dpi),
    ]
    logger.info(f"Charts written to {out}")
    return paths


# -----------------------------
# DOCX report
# -----------------------------

def generate_docx_report(
    analysis,
    out_path: PathLike,
    *,
    config: Optional[ReportConfig] = None,
) -> str:
    """
    Generate a DOCX report (tables + charts) for one `StormAnalysis`.
    """
    config = config or ReportConfig()

    # Lazy imports: only required when a report is requested.
    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    n = config.top_n
    summary = analysis.summary

    # -----------------------------
    # Build DOCX report
    # -----------------------------
    doc = Document()

    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _kv(key: str, value: str) -> None:
        p = doc.add_paragraph()
        r = p.add_run(f"{key}: ")
        r.bold = True
        p.add_run(value)

    def _table(header: Sequence[str], body: Sequence[Sequence[str]]) -> None:
        t = doc.add_table(rows=1, cols=len(header))
        for cell, text in zip(t.rows[0].cells, header):
            cell.text = text
        for values in body:
            cells = t.add_row().cells
            for cell, text in zip(cells, values):
                cell.text = text

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    _kv("Dataset", config.dataset_name)
    _kv("Events analysed", f"{len(analysis.events):,}")
    _kv("Labels ranked (health)", str(len(analysis.health)))
    _kv("Labels ranked (economic)", str(len(analysis.economic)))

    doc.add_paragraph("")
    doc.add_heading("Dataset citation", level=1)
    cit = config.citation
    if cit.file_name:
        doc.add_paragraph(f"Data file used: {cit.file_name}")
    if cit.file_note:
        doc.add_paragraph(f"File note: {cit.file_note}")
    doc.add_paragraph(f"{cit.institutional_author}. {cit.database_name}. {cit.location}. {cit.website}.")

    doc.add_paragraph("")
    doc.add_heading("Event type normalization", level=1)
    doc.add_paragraph(
        f"{summary.distinct_raw:,} distinct raw event types were cleaned to "
        f"{summary.distinct_cleaned:,} and mapped onto {summary.distinct_canonical:,} labels "
        f"with rule set v{summary.ruleset_version}. "
        f"{summary.unmatched:,} cleaned values matched no rule and are kept as their own label."
    )
    doc.add_paragraph("Rules fired per distinct cleaned value, in application order:")
    _table(
        ["Rule", "Match", "Pattern", "Label", "Hits"],
        [[str(i + 1), rule.match, rule.pattern, rule.label, f"{summary.rule_hits.get(i, 0):,}"]
         for i, rule in enumerate(summary.rules)],
    )

    doc.add_paragraph("")
    doc.add_heading(f"Top {n} event types by public-health impact", level=1)
    _table(
        ["#", "Event type", "Fatalities", "Injuries"],
        [[str(i), r.label, f"{r.total_fatalities:,}", f"{r.total_injuries:,}"]
         for i, r in enumerate(analysis.health.top(n), start=1)],
    )

    doc.add_paragraph("")
    doc.add_heading(f"Top {n} event types by economic damage", level=1)
    _table(
        ["#", "Event type", "Property (US$)", "Crop (US$)", "Total (US$)"],
        [[str(i), r.label, _money(r.total_property_damage), _money(r.total_crop_damage), _money(r.total_damage)]
         for i, r in enumerate(analysis.economic.top(n), start=1)],
    )

    # -----------------------------
    # Charts (rendered into a scratch directory, embedded, then discarded)
    # -----------------------------
    # Each chart is: (title, plot function, ranking, caption)
    charts: List[Tuple[str, Callable[..., str], Ranking, str]] = []
    if len(analysis.health):
        charts.append((
            "Public-health impact", plot_health, analysis.health,
            "Only events with at least one fatality are counted.",
        ))
    if len(analysis.economic):
        charts.append((
            "Economic damage", plot_economic, analysis.economic,
            "Property and crop damage, K/M/B unit codes decoded; other codes count as zero.",
        ))

    if charts:
        doc.add_paragraph("")
        doc.add_heading("Visualizations", level=1)
        with tempfile.TemporaryDirectory(prefix="stormrank_report_") as tmpdir:
            for i, (title, plot, ranking, caption) in enumerate(charts):
                path = plot(ranking, os.path.join(tmpdir, f"chart_{i}.png"), n, dpi=config.chart_dpi)
                doc.add_paragraph(title)
                doc.add_picture(path, width=Inches(6.5))
                doc.add_paragraph(caption)

    # -----------------------------
    # Reproducibility footer
    # -----------------------------
    doc.add_paragraph("")
    doc.add_heading("Reproducibility footer", level=1)

    from . import __version__ as stormrank_version
    from datetime import datetime as _dt
    generated_at = _dt.now().isoformat(timespec="seconds")

    doc.add_paragraph(f"StormRank version: {stormrank_version}")
    doc.add_paragraph(f"Normalization rule set: v{summary.ruleset_version}")
    doc.add_paragraph(f"Report generated at: {generated_at}")
    if analysis.dataset_path:
        doc.add_paragraph(f"Dataset file: {os.path.basename(analysis.dataset_path)}")

    os.makedirs(os.path.dirname(str(out_path)) or ".", exist_ok=True)
    doc.save(str(out_path))
    logger.info(f"Report written to {out_path}")
    return str(out_path)
