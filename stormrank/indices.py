"""
Label index
===========

Maps each canonical label to the sorted list of event IDs carrying it.

Example:
- `idx.by_label["TORNADO"]` gives every event ID normalized to TORNADO.
- `idx.raw_by_label["SNOW"]` lists the raw spellings that collapsed into SNOW.

Used for the `--labels` listing and for auditing what each label absorbed.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Set, Tuple
from .models import CanonicalEvent


@dataclass
class LabelIndex:
    """Container of label -> IDs and label -> raw spellings."""
    by_label: Dict[str, List[int]]
    raw_by_label: Dict[str, Set[str]]

    def counts(self) -> List[Tuple[str, int]]:
        """(label, events) pairs, most frequent first, then A-Z."""
        return sorted(((k, len(v)) for k, v in self.by_label.items()), key=lambda kv: (-kv[1], kv[0]))


def build_label_index(events: Iterable[CanonicalEvent]) -> LabelIndex:
    by_label: Dict[str, List[int]] = {}
    raw_by_label: Dict[str, Set[str]] = {}

    for e in events:
        by_label.setdefault(e.category, []).append(e.event_id)
        raw_by_label.setdefault(e.category, set()).add(e.raw_category)

    for ids in by_label.values():
        ids.sort()

    return LabelIndex(by_label=by_label, raw_by_label=raw_by_label)
