import pytest
from loguru import logger

from stormrank.normalizer import (
    CONTAINS, PREFIX, RULES, RULESET_VERSION, Rule,
    apply_rules, clean_category, normalization_summary, normalize_category, normalize_events, trace_rules,
)


def test_clean_category_uppercases_and_strips_punctuation_and_digits() -> None:
    assert clean_category(" tstm  wind/hail 2 ") == "TSTM WINDHAIL"
    assert clean_category("Tornado F2") == "TORNADO F"
    assert clean_category("   ") == ""


@pytest.mark.parametrize("raw, label", [
    ("TSTM WIND", "THUNDERSTORM"),
    ("THUNDERSTORM WIND", "THUNDERSTORM"),
    ("Thunderstorm Winds", "THUNDERSTORM"),
    ("HEAVY SNOW", "SNOW"),
    ("BLIZZARD", "SNOW"),
    ("EXCESSIVE HEAT", "HEAT"),
    ("RECORD WARMTH", "HEAT"),
    ("EXTREME COLD/WIND CHILL", "COLD"),
    ("HIGH WIND", "WIND"),
    ("FLASH FLOOD", "FLOOD"),
    ("FLOOD/FLASH FLOOD", "FLOOD"),
    ("HURRICANE/TYPHOON", "HURRICANE"),
    ("TYPHOON", "TYPHOON"),
    ("TROPICAL STORM", "TROPICAL STORM"),
    ("TROPICAL/STORM", "TROPICAL STORM"),
    ("TROPICALSTORM GORDON", "TROPICAL STORM"),
    ("Rip Currents", "RIP CURRENTS"),
    ("TORNADO", "TORNADO"),
])
def test_reference_fixtures(raw: str, label: str) -> None:
    assert normalize_category(raw) == label


def test_later_rule_sees_rewritten_value() -> None:
    # WIND rewrites first, so the HURR prefix rule no longer matches
    assert normalize_category("HURRICANE OPAL/HIGH WINDS") == "WIND"
    # COLD rewrites first, so the WIND rule no longer matches
    assert trace_rules(clean_category("EXTREME COLD/WIND CHILL")) == [9]


def test_rule_order_changes_output() -> None:
    value = clean_category("EXTREME COLD/WIND CHILL")
    assert apply_rules(value, RULES) == "COLD"
    assert apply_rules(value, tuple(reversed(RULES))) == "WIND"


def test_broad_substring_rules_are_kept() -> None:
    assert normalize_category("PHOTOCHEMICAL SMOG") == "HEAT"
    assert normalize_category("COOL AND WET") == "COLD"
    # HEIL maps onto itself; HAIL is untouched
    assert normalize_category("HEIL") == "HEIL"
    assert normalize_category("HAIL") == "HAIL"


def test_canonical_labels_are_fixed_points() -> None:
    for label in {r.label for r in RULES} | {"TORNADO", "RIP CURRENTS"}:
        assert normalize_category(label) == label


def test_normalization_is_deterministic() -> None:
    raws = ["tstm wind", "Heavy Snow", "storm surge", "COLD/WIND"]
    assert [normalize_category(r) for r in raws] == [normalize_category(r) for r in raws]
    custom = (Rule(CONTAINS, "SURGE", "STORM SURGE"),)
    assert normalize_category("storm surge/tide", custom) == "STORM SURGE"


def test_rule_rejects_unknown_match_type() -> None:
    with pytest.raises(ValueError):
        Rule("regex", "X", "Y")


def test_prefix_rule_is_anchored() -> None:
    rule = Rule(PREFIX, "FLOOD", "FLOOD")
    assert rule.matches("FLOOD WATCH")
    assert not rule.matches("FLASH FLOOD")


def test_normalize_events_keeps_metrics_and_raw_category(make_event) -> None:
    raw = make_event("tstm wind", fatalities=1, injuries=2, prop=3.0, prop_unit="K")
    (e,) = normalize_events([raw])
    assert e.category == "THUNDERSTORM"
    assert e.raw_category == "tstm wind"
    assert (e.event_id, e.fatalities, e.injuries, e.property_damage, e.property_unit) == (
        raw.event_id, 1, 2, 3.0, "K")


def test_normalization_summary_counts(make_event) -> None:
    events = [make_event(c) for c in ("TSTM WIND", "tstm wind", "Heavy Snow", "RIP CURRENT")]
    s = normalization_summary(events)
    assert s.ruleset_version == RULESET_VERSION
    assert (s.distinct_raw, s.distinct_cleaned, s.distinct_canonical) == (4, 3, 3)
    assert s.unmatched == 1
    assert s.rule_hits[1] == 1
    assert s.rule_hits[3] == 1
    assert s.reduction == 1


def test_rule_table_is_pinned() -> None:
    assert RULESET_VERSION == 1
    assert [(r.match, r.pattern, r.label) for r in RULES] == [
        ("prefix", "THU", "THUNDERSTORM"),
        ("contains", "TSTM", "THUNDERSTORM"),
        ("contains", "HEIL", "HEIL"),
        ("contains", "SNOW", "SNOW"),
        ("contains", "BLIZZARD", "SNOW"),
        ("contains", "HEAT", "HEAT"),
        ("contains", "WARM", "HEAT"),
        ("contains", "HOT", "HEAT"),
        ("contains", "COOL", "COLD"),
        ("contains", "COLD", "COLD"),
        ("contains", "WIND", "WIND"),
        ("prefix", "FLOOD", "FLOOD"),
        ("contains", "FLOOD", "FLOOD"),
        ("prefix", "HURR", "HURRICANE"),
        ("prefix", "TYPHOON", "TYPHOON"),
        ("prefix", "TROPICALS", "TROPICAL STORM"),
    ]


def test_tropical_storm_rule_fires() -> None:
    assert trace_rules(clean_category("TROPICAL/STORM")) == [15]
    assert trace_rules(clean_category("TROPICAL STORM")) == []


def test_summary_logs_rule_hits(make_event) -> None:
    messages = []
    sink = logger.add(messages.append, level="INFO", format="{message}")
    try:
        s = normalization_summary([make_event(c) for c in ("TSTM WIND", "FLASH FLOOD", "RIP CURRENT")])
    finally:
        logger.remove(sink)
    assert s.rules == RULES
    line = next(m for m in messages if "Event types:" in m)
    assert "rule hits: #2=1, #13=1" in line
    assert "unmatched: 1" in line
