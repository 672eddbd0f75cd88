"""
Data model (RawEvent / CanonicalEvent / AggregateRow)
=====================================================

Each row of the storm dataset is converted into a `RawEvent` object.
The normalizer turns it into a `CanonicalEvent` and the aggregator folds
those into one `AggregateRow` per canonical label.

All records are immutable (`frozen=True`) so that:
- events cannot be accidentally modified after loading, and
- every run recomputes the aggregates from scratch.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class RawEvent:
    """One storm event record as read from the dataset.

    Damage figures are raw magnitudes; the unit code (K/M/B) qualifies them.
    """
    event_id: int
    category: str
    fatalities: int
    injuries: int
    property_damage: float
    property_unit: str
    crop_damage: float
    crop_unit: str


@dataclass(frozen=True)
class CanonicalEvent:
    """A RawEvent whose category was replaced by a canonical label."""
    event_id: int
    category: str
    raw_category: str
    fatalities: int
    injuries: int
    property_damage: float
    property_unit: str
    crop_damage: float
    crop_unit: str


@dataclass(frozen=True)
class AggregateRow:
    """Totals for one canonical label. Damage is in US$."""
    label: str
    total_fatalities: int = 0
    total_injuries: int = 0
    total_property_damage: float = 0.0
    total_crop_damage: float = 0.0
    event_count: int = 0

    @property
    def total_damage(self) -> float:
        return self.total_property_damage + self.total_crop_damage


@dataclass(frozen=True)
class Ranking:
    """A sorted table of AggregateRow plus a top-N view."""
    name: str
    order_by: Tuple[str, ...]
    rows: Tuple[AggregateRow, ...]

    def __len__(self) -> int:
        return len(self.rows)

    def top(self, n: int = 5) -> Tuple[AggregateRow, ...]:
        """Return the first `n` rows (fewer if the table is shorter)."""
        if n < 0:
            raise ValueError("n must be >= 0")
        return self.rows[:n]

    @property
    def top5(self) -> Tuple[AggregateRow, ...]:
        return self.top(5)

    def labels(self) -> Tuple[str, ...]:
        return tuple(r.label for r in self.rows)
