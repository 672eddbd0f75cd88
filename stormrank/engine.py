"""
Analysis engine
===============

Runs the pipeline once over an in-memory dataset:

1) Raw events -> canonical events (normalizer)
2) Canonical events -> health and economic rankings (aggregator)
3) Rankings -> exports (CSV / JSON) and the reporter

`StormAnalysis` only holds the results of that single run; calling `run`
again recomputes everything from the raw events.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
import csv
import json

from loguru import logger

from .aggregator import ECONOMIC, HEALTH, rank_economic, rank_health
from .indices import LabelIndex, build_label_index
from .models import AggregateRow, CanonicalEvent, Ranking, RawEvent
from .normalizer import RULES, NormalizationSummary, Rule, normalization_summary, normalize_events

EXPORT_FIELDS = [
    "rank", "label", "event_count",
    "total_fatalities", "total_injuries",
    "total_property_damage", "total_crop_damage", "total_damage",
]


@dataclass
class StormAnalysis:
    """Results of one pipeline run."""
    events: List[CanonicalEvent]
    health: Ranking
    economic: Ranking
    summary: NormalizationSummary
    idx: LabelIndex
    dataset_path: Optional[str] = None

    @classmethod
    def run(cls, raw_events: Sequence[RawEvent], *, rules: Sequence[Rule] = RULES,
            dataset_path: Optional[str] = None) -> "StormAnalysis":
        logger.info(f"Analysing {len(raw_events)} events")
        summary = normalization_summary(raw_events, rules)
        events = normalize_events(raw_events, rules)
        health = rank_health(events)
        economic = rank_economic(events)
        logger.info(f"Ranked {len(health)} labels by health impact, {len(economic)} by damage")
        return cls(
            events=events,
            health=health,
            economic=economic,
            summary=summary,
            idx=build_label_index(events),
            dataset_path=dataset_path,
        )

    def ranking(self, which: str) -> Ranking:
        w = which.lower().strip()
        if w == HEALTH:
            return self.health
        if w == ECONOMIC:
            return self.economic
        raise ValueError(f"ranking must be '{HEALTH}' or '{ECONOMIC}', got {which!r}")

    # ---------------- Export ----------------
    def export_csv(self, path: Union[str, Path], which: str, top: Optional[int] = None) -> None:
        rows = _rows(self.ranking(which), top)
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=EXPORT_FIELDS)
            w.writeheader()
            for r in rows:
                w.writerow(r)
        logger.info(f"Exported {len(rows)} {which} rows to {path}")

    def export_json(self, path: Union[str, Path], which: str, top: Optional[int] = None) -> None:
        """Export one ranking to JSON (keeps field names and numeric types)."""
        rows = _rows(self.ranking(which), top)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(rows, f, ensure_ascii=False, indent=2)
        logger.info(f"Exported {len(rows)} {which} rows to {path}")


def _rows(ranking: Ranking, top: Optional[int]) -> List[Dict[str, object]]:
    rows = ranking.rows if top is None else ranking.top(top)
    return [_row_dict(i, r) for i, r in enumerate(rows, start=1)]


def _row_dict(rank: int, r: AggregateRow) -> Dict[str, object]:
    return {
        "rank": rank,
        "label": r.label,
        "event_count": r.event_count,
        "total_fatalities": r.total_fatalities,
        "total_injuries": r.total_injuries,
        "total_property_damage": r.total_property_damage,
        "total_crop_damage": r.total_crop_damage,
        "total_damage": r.total_damage,
    }
