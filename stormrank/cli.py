"""
StormRank Command Line Interface (CLI)
======================================

One batch run per invocation:

    python -m stormrank.cli --download
    python -m stormrank.cli --csv "path/to/StormData.csv.bz2" --top 10 --report out.docx

Steps:
1) Load the dataset (local file, or download into the cache)
2) Normalize event types and rank them (StormAnalysis)
3) Print both top-N tables, then write the optional charts/report/exports

The CLI never modifies the dataset file.
"""

from __future__ import annotations
import argparse
import os
import sys
from typing import List, Optional

from loguru import logger

from .config import settings
from .engine import StormAnalysis
from .loader import DataValidationError, fetch_dataset, load_storm_events
from .report import DatasetCitation, ReportConfig, format_ranking, generate_docx_report, save_charts
from .utils.logging import setup_logging

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="stormrank",
        description="Rank storm event types by public-health impact and economic damage.",
    )
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--csv", help="Path to the storm dataset (CSV, .csv.bz2 or .xlsx)")
    src.add_argument("--download", action="store_true", help="Download the dataset into the cache (or reuse the cached copy)")
    ap.add_argument("--url", default=settings.DATA_URL, help="Dataset URL used with --download")
    ap.add_argument("--cache-dir", default=settings.CACHE_DIR, help="Download cache directory")
    ap.add_argument("--force", action="store_true", help="Re-download even when cached")
    ap.add_argument("--nrows", type=int, default=None, help="Only read the first N rows")
    ap.add_argument("--top", type=int, default=settings.TOP_N, help="Rows shown per ranking (default: %(default)s)")
    ap.add_argument("--charts", metavar="DIR", help="Write bar charts (PNG) into DIR")
    ap.add_argument("--report", metavar="OUT.docx", help="Write a DOCX report")
    ap.add_argument("--export-csv", metavar="PREFIX", help="Write PREFIX_health.csv and PREFIX_economic.csv")
    ap.add_argument("--export-json", metavar="PREFIX", help="Write PREFIX_health.json and PREFIX_economic.json")
    ap.add_argument("--labels", action="store_true", help="List canonical labels with event counts")
    ap.add_argument("--log-level", type=str.upper, default=settings.LOG_LEVEL, choices=LOG_LEVELS,
                    help="Log level (default: %(default)s)")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the StormRank CLI. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.top < 0:
        logger.error("--top must be >= 0")
        return 2

    try:
        if args.download:
            path = str(fetch_dataset(args.url, args.cache_dir, timeout=settings.REQUEST_TIMEOUT, force=args.force))
        else:
            path = args.csv
        raw = load_storm_events(path, nrows=args.nrows)
        analysis = StormAnalysis.run(raw, dataset_path=path)
        _emit(analysis, args)
    except (DataValidationError, FileNotFoundError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    return 0


def _emit(analysis: StormAnalysis, args: argparse.Namespace) -> None:
    n = args.top
    s = analysis.summary
    print(f"Loaded {len(analysis.events):,} events; "
          f"{s.distinct_raw:,} raw event types -> {s.distinct_canonical:,} labels.")
    print()
    print(f"Top {n} event types by fatalities (events with fatalities > 0):")
    print(format_ranking(analysis.health, n))
    print()
    print(f"Top {n} event types by economic damage:")
    print(format_ranking(analysis.economic, n))

    if args.labels:
        print()
        print("Canonical labels:")
        for label, count in analysis.idx.counts():
            print(f"{count:>9,}  {label}")

    if args.charts:
        save_charts(analysis, args.charts, n, dpi=settings.CHART_DPI)

    if args.report:
        cfg = ReportConfig(
            top_n=n,
            chart_dpi=settings.CHART_DPI,
            citation=DatasetCitation(file_name=os.path.basename(analysis.dataset_path or "") or None),
        )
        generate_docx_report(analysis, args.report, config=cfg)
        print(f"Report written to {args.report}")

    exports = (
        (args.export_csv, "csv", analysis.export_csv),
        (args.export_json, "json", analysis.export_json),
    )
    for prefix, ext, export in exports:
        if not prefix:
            continue
        for which in ("health", "economic"):
            export(f"{prefix}_{which}.{ext}", which)


if __name__ == "__main__":
    sys.exit(main())
