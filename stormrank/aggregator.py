"""
Metric aggregator
=================

Folds canonical events into one `AggregateRow` per label and ranks the groups.

Two independent rankings are produced:
- health: events with fatalities > 0 only, ordered by fatalities then injuries
- economic: all events, ordered by total damage (property + crop)

Damage magnitudes are qualified by a unit code. Only K, M and B are understood;
every other code (blank, lower-case, digits, '+', '?') multiplies by zero, so
the raw figure is dropped rather than used as-is.

Ties that survive the metric keys are broken by label (A-Z), which keeps the
output identical between runs.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from .dsa import merge_sort
from .models import AggregateRow, CanonicalEvent, Ranking

MAGNITUDE = {
    "K": 1_000,
    "M": 1_000_000,
    "B": 1_000_000_000,
}

HEALTH = "health"
ECONOMIC = "economic"


def decode_magnitude(code: Optional[str]) -> int:
    """Return the multiplier for a unit code (0 when the code is unknown)."""
    if code is None:
        return 0
    return MAGNITUDE.get(code, 0)


def event_damage(e: CanonicalEvent) -> Tuple[float, float, float]:
    """Return (property, crop, total) damage of one event in US$."""
    prop = e.property_damage * decode_magnitude(e.property_unit)
    crop = e.crop_damage * decode_magnitude(e.crop_unit)
    return prop, crop, prop + crop


@dataclass
class _Acc:
    fatalities: int = 0
    injuries: int = 0
    property_damage: float = 0.0
    crop_damage: float = 0.0
    count: int = 0


def aggregate(
    events: Iterable[CanonicalEvent],
    include: Optional[Callable[[CanonicalEvent], bool]] = None,
) -> Dict[str, AggregateRow]:
    """Group events by canonical label and sum every metric.

    `include` optionally filters rows before they are folded in.
    """
    groups: Dict[str, _Acc] = {}
    for e in events:
        if include is not None and not include(e):
            continue
        acc = groups.get(e.category)
        if acc is None:
            acc = groups[e.category] = _Acc()
        prop, crop, _ = event_damage(e)
        acc.fatalities += e.fatalities
        acc.injuries += e.injuries
        acc.property_damage += prop
        acc.crop_damage += crop
        acc.count += 1

    return {
        label: AggregateRow(
            label=label,
            total_fatalities=acc.fatalities,
            total_injuries=acc.injuries,
            total_property_damage=acc.property_damage,
            total_crop_damage=acc.crop_damage,
            event_count=acc.count,
        )
        for label, acc in groups.items()
    }


def _rank(name: str, rows: Iterable[AggregateRow], key: Callable[[AggregateRow], object],
          order_by: Tuple[str, ...]) -> Ranking:
    # label order first; the stable sort keeps it among equal metric keys
    by_label = sorted(rows, key=lambda r: r.label)
    ordered: List[AggregateRow] = merge_sort(by_label, key=key, reverse=True)
    return Ranking(name=name, order_by=order_by, rows=tuple(ordered))


def rank_health(events: Iterable[CanonicalEvent]) -> Ranking:
    """Rank labels by total fatalities, then total injuries.

    Events without fatalities are left out entirely, even when they
    carry injuries.
    """
    groups = aggregate(events, include=lambda e: e.fatalities > 0)
    ranking = _rank(
        HEALTH,
        groups.values(),
        key=lambda r: (r.total_fatalities, r.total_injuries),
        order_by=("total_fatalities", "total_injuries"),
    )
    logger.debug(f"Health ranking: {len(ranking)} labels")
    return ranking


def rank_economic(events: Iterable[CanonicalEvent]) -> Ranking:
    """Rank labels by total (property + crop) damage."""
    groups = aggregate(events)
    ranking = _rank(
        ECONOMIC,
        groups.values(),
        key=lambda r: r.total_damage,
        order_by=("total_damage",),
    )
    logger.debug(f"Economic ranking: {len(ranking)} labels")
    return ranking
