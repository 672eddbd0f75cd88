import pandas as pd
import pytest

from stormrank.models import RawEvent
from stormrank.normalizer import normalize_events


@pytest.fixture
def make_event():
    counter = iter(range(10_000))

    def _make(category, fatalities=0, injuries=0, prop=0.0, prop_unit="", crop=0.0, crop_unit=""):
        return RawEvent(
            event_id=next(counter),
            category=category,
            fatalities=fatalities,
            injuries=injuries,
            property_damage=prop,
            property_unit=prop_unit,
            crop_damage=crop,
            crop_unit=crop_unit,
        )

    return _make


@pytest.fixture
def canonical(make_event):
    """Build canonical events from (category, fatalities, injuries, prop, unit, crop, unit) tuples."""
    def _build(*rows):
        return normalize_events([make_event(*row) for row in rows])

    return _build


@pytest.fixture
def storm_frame():
    return pd.DataFrame({
        "STATE": ["AL", "TX", "KS", "MO", "OK"],
        "EVTYPE": ["TSTM WIND", "Thunderstorm Winds", "FLASH FLOOD", "HEAVY SNOW", "RIP CURRENT"],
        "FATALITIES": [2, 1, 4, 0, 3],
        "INJURIES": [10, 5, 0, 50, 1],
        "PROPDMG": [1.5, 3.0, 1.0, 25.0, 0.0],
        "PROPDMGEXP": ["K", "M", "B", "k", None],
        "CROPDMG": [2.0, 0.0, 0.0, 0.0, 0.0],
        "CROPDMGEXP": ["M", None, None, None, None],
    })
