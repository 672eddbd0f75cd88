"""
Event-type normalizer
=====================

The raw `EVTYPE` column holds ~985 distinct free-text values ("TSTM WIND",
"Thunderstorm Winds", "HEAVY SNOW/ICE", ...). This module collapses them into
a much smaller set of canonical labels.

Steps:
1) upper-case
2) drop punctuation and digits
3) collapse whitespace
4) run the ORDERED rule list over the running value

Each rule rewrites the *whole* value to its label when it matches, and the next
rule sees the rewritten value. Rule order is therefore part of the result:
"EXTREME COLD/WIND CHILL" becomes "COLD" at rule 10, so rule 11 (WIND) no longer
matches. The list is versioned as one unit (`RULESET_VERSION`).

Broad substring rules are kept literally: "COOL" matches inside unrelated
words, and the "HEIL" rule maps its matches onto themselves. Published rankings
were produced with this exact list.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from functools import lru_cache
import re
import string
from typing import Dict, Iterable, List, Sequence, Tuple

from loguru import logger

from .models import CanonicalEvent, RawEvent

RULESET_VERSION = 1

PREFIX = "prefix"
CONTAINS = "contains"

_STRIP_RE = re.compile("[" + re.escape(string.punctuation) + string.digits + "]")
_SPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Rule:
    """Rewrite the whole value to `label` when `pattern` matches."""
    match: str
    pattern: str
    label: str

    def __post_init__(self) -> None:
        if self.match not in (PREFIX, CONTAINS):
            raise ValueError(f"match must be '{PREFIX}' or '{CONTAINS}', got {self.match!r}")

    def matches(self, value: str) -> bool:
        if self.match == PREFIX:
            return value.startswith(self.pattern)
        return self.pattern in value


RULES: Tuple[Rule, ...] = (
    Rule(PREFIX, "THU", "THUNDERSTORM"),
    Rule(CONTAINS, "TSTM", "THUNDERSTORM"),
    Rule(CONTAINS, "HEIL", "HEIL"),
    Rule(CONTAINS, "SNOW", "SNOW"),
    Rule(CONTAINS, "BLIZZARD", "SNOW"),
    Rule(CONTAINS, "HEAT", "HEAT"),
    Rule(CONTAINS, "WARM", "HEAT"),
    Rule(CONTAINS, "HOT", "HEAT"),
    Rule(CONTAINS, "COOL", "COLD"),
    Rule(CONTAINS, "COLD", "COLD"),
    Rule(CONTAINS, "WIND", "WIND"),
    Rule(PREFIX, "FLOOD", "FLOOD"),
    Rule(CONTAINS, "FLOOD", "FLOOD"),
    Rule(PREFIX, "HURR", "HURRICANE"),
    Rule(PREFIX, "TYPHOON", "TYPHOON"),
    Rule(PREFIX, "TROPICALS", "TROPICAL STORM"),
)


def clean_category(raw: str) -> str:
    """Upper-case, drop punctuation/digits and collapse whitespace."""
    s = str(raw).upper()
    s = _STRIP_RE.sub("", s)
    return _SPACE_RE.sub(" ", s).strip()


def apply_rules(value: str, rules: Sequence[Rule] = RULES) -> str:
    """Run every rule, in order, over the running value."""
    for rule in rules:
        if rule.matches(value):
            value = rule.label
    return value


def trace_rules(value: str, rules: Sequence[Rule] = RULES) -> List[int]:
    """Return the (0-based) positions of the rules that fired for `value`."""
    fired: List[int] = []
    for i, rule in enumerate(rules):
        if rule.matches(value):
            value = rule.label
            fired.append(i)
    return fired


@lru_cache(maxsize=None)
def _normalize_default(raw: str) -> str:
    return apply_rules(clean_category(raw), RULES)


def normalize_category(raw: str, rules: Sequence[Rule] = RULES) -> str:
    """Map one raw event-type string to its canonical label."""
    if rules is RULES:
        return _normalize_default(raw)
    return apply_rules(clean_category(raw), rules)


def normalize_events(events: Iterable[RawEvent], rules: Sequence[Rule] = RULES) -> List[CanonicalEvent]:
    """Replace the category of each event with its canonical label."""
    cache: Dict[str, str] = {}
    out: List[CanonicalEvent] = []
    for e in events:
        label = cache.get(e.category)
        if label is None:
            label = cache[e.category] = normalize_category(e.category, rules)
        out.append(CanonicalEvent(
            event_id=e.event_id,
            category=label,
            raw_category=e.category,
            fatalities=e.fatalities,
            injuries=e.injuries,
            property_damage=e.property_damage,
            property_unit=e.property_unit,
            crop_damage=e.crop_damage,
            crop_unit=e.crop_unit,
        ))
    logger.debug(f"Normalized {len(out)} events ({len(cache)} distinct raw categories)")
    return out


@dataclass
class NormalizationSummary:
    """How much the rule chain reduced the category vocabulary."""
    ruleset_version: int
    distinct_raw: int
    distinct_cleaned: int
    distinct_canonical: int
    # rule position -> number of distinct cleaned values it fired on
    rule_hits: Dict[int, int] = field(default_factory=dict)
    unmatched: int = 0
    rules: Tuple[Rule, ...] = ()

    @property
    def reduction(self) -> int:
        return self.distinct_raw - self.distinct_canonical


def normalization_summary(events: Iterable[RawEvent], rules: Sequence[Rule] = RULES) -> NormalizationSummary:
    raw = {e.category for e in events}
    cleaned = {clean_category(r) for r in raw}
    hits: Counter = Counter()
    unmatched = 0
    canonical = set()
    for value in cleaned:
        fired = trace_rules(value, rules)
        hits.update(fired)
        if not fired:
            unmatched += 1
        canonical.add(apply_rules(value, rules))
    summary = NormalizationSummary(
        ruleset_version=RULESET_VERSION,
        distinct_raw=len(raw),
        distinct_cleaned=len(cleaned),
        distinct_canonical=len(canonical),
        rule_hits={i: hits.get(i, 0) for i in range(len(rules))},
        unmatched=unmatched,
        rules=tuple(rules),
    )
    hit_text = ", ".join(f"#{i + 1}={n}" for i, n in summary.rule_hits.items() if n)
    logger.info(
        f"Event types: {summary.distinct_raw} raw -> {summary.distinct_cleaned} cleaned "
        f"-> {summary.distinct_canonical} canonical (rule set v{summary.ruleset_version}); "
        f"rule hits: {hit_text or 'none'}, unmatched: {summary.unmatched}"
    )
    return summary
